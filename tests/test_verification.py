import random
from datetime import timedelta

import pytest

from almond.core.constants import VERIFICATION_CODE_MAX, VERIFICATION_CODE_MIN
from almond.exceptions.http import (
    AlreadyExists,
    ChannelMismatch,
    CodeAbsent,
    CodeExpired,
    CodeInvalid,
    CodeNotNumeric,
    DuplicateCode,
)
from almond.models.base import utcnow
from almond.models.definitions import AccountStatus
from almond.services import ChannelBinding, VerificationService
from almond.services import verification as verification_module

pytestmark = pytest.mark.anyio


class ScriptedRandom(random.Random):
    """Hands out a fixed sequence of integers from randint."""

    def __init__(self, values):
        super().__init__()
        self._values = iter(values)

    def randint(self, a, b):
        return next(self._values)


async def test_issue_assigns_five_digit_code_with_ten_minute_expiry(verification, make_user):
    user = await make_user(status=AccountStatus.PENDING)
    before = utcnow()

    ticket = await verification.issue(user)

    assert VERIFICATION_CODE_MIN <= ticket.code <= VERIFICATION_CODE_MAX
    assert ticket.identity_id == user.id
    assert user.verification_code == ticket.code
    assert before + timedelta(minutes=10) <= ticket.expires_at <= utcnow() + timedelta(minutes=10)


async def test_issue_refuses_active_identity(verification, make_user):
    user = await make_user()

    with pytest.raises(AlreadyExists):
        await verification.issue(user)


async def test_issue_rotates_code_on_every_call(session, user_repo, make_user):
    user = await make_user(status=AccountStatus.PENDING)
    service = VerificationService(session, user_repo, rng=ScriptedRandom([11111, 22222]))

    first = await service.issue(user)
    second = await service.issue(user)

    assert (first.code, second.code) == (11111, 22222)
    assert user.verification_code == 22222


class NarrowRandom(random.Random):
    """Draws from the first `width` codes only, so collisions are frequent."""

    def __init__(self, width):
        super().__init__(7)
        self._width = width

    def randint(self, a, b):
        return super().randint(a, a + self._width - 1)


async def test_live_codes_are_distinct_across_many_pending_identities(session, user_repo, make_user):
    verification = VerificationService(session, user_repo, rng=NarrowRandom(60))
    codes = []
    for _ in range(50):
        user = await make_user(status=AccountStatus.PENDING)
        codes.append((await verification.issue(user)).code)
        await session.commit()

    assert len(set(codes)) == len(codes)


async def test_generated_code_skips_values_held_by_other_pending_identities(session, user_repo, make_user):
    holder = await make_user(status=AccountStatus.PENDING)
    await user_repo.set_verification_code(holder, 12345, utcnow() + timedelta(minutes=5))
    await session.commit()
    newcomer = await make_user(status=AccountStatus.PENDING)
    service = VerificationService(session, user_repo, rng=ScriptedRandom([12345, 12345, 54321]))

    ticket = await service.issue(newcomer)

    assert ticket.code == 54321
    assert holder.verification_code == 12345


async def test_expired_code_of_another_identity_is_released_for_reuse(session, user_repo, make_user):
    holder = await make_user(status=AccountStatus.PENDING)
    await user_repo.set_verification_code(holder, 12345, utcnow() - timedelta(minutes=1))
    await session.commit()
    newcomer = await make_user(status=AccountStatus.PENDING)
    service = VerificationService(session, user_repo, rng=ScriptedRandom([12345]))

    ticket = await service.issue(newcomer)
    await session.commit()

    assert ticket.code == 12345
    assert holder.verification_code is None
    assert newcomer.verification_code == 12345


async def test_code_space_exhaustion_raises_duplicate_code(session, user_repo, make_user):
    holder = await make_user(status=AccountStatus.PENDING)
    await user_repo.set_verification_code(holder, 12345, utcnow() + timedelta(minutes=5))
    await session.commit()
    newcomer = await make_user(status=AccountStatus.PENDING)
    service = VerificationService(session, user_repo, rng=ScriptedRandom([12345] * VerificationService.MAX_DRAWS))

    with pytest.raises(DuplicateCode):
        await service.issue(newcomer)


# --- verify ---


@pytest.mark.parametrize("code", [None, "", "   "])
async def test_missing_code_is_absent(verification, code):
    with pytest.raises(CodeAbsent):
        await verification.verify(code, ChannelBinding(email="a@x.com"))


@pytest.mark.parametrize("code", ["12a45", "12.45", "-1234", "١٢٣٤٥"])
async def test_non_digit_code_is_not_numeric(verification, code):
    with pytest.raises(CodeNotNumeric):
        await verification.verify(code, ChannelBinding(email="a@x.com"))


@pytest.mark.parametrize("code", ["1234", "123456", 99])
async def test_out_of_range_code_is_invalid(verification, code):
    with pytest.raises(CodeInvalid):
        await verification.verify(code, ChannelBinding(email="a@x.com"))


async def test_unknown_code_is_invalid_even_without_binding(verification):
    with pytest.raises(CodeInvalid):
        await verification.verify("12345", ChannelBinding())


async def test_verify_activates_email_identity(verification, make_user):
    user = await make_user(email="ann@x.com", status=AccountStatus.PENDING)
    ticket = await verification.issue(user)

    verified = await verification.verify(str(ticket.code), ChannelBinding(email="ann@x.com"))

    assert verified.id == user.id
    assert verified.account_status == AccountStatus.ACTIVE.value
    assert verified.verification_code is None
    assert verified.verification_code_expires_at is None
    assert verified.is_phone_number_verified is False


async def test_verify_phone_binding_marks_phone_verified(verification, make_user):
    user = await make_user(email=None, country_code="UZ", phone_number="901234567", status=AccountStatus.PENDING)
    ticket = await verification.issue(user)

    verified = await verification.verify(
        ticket.code, ChannelBinding(country_code="uz", phone_number="901234567")
    )

    assert verified.is_active
    assert verified.is_phone_number_verified is True
    assert verified.is_verified_user is True


async def test_verification_is_one_shot(verification, make_user):
    user = await make_user(email="ann@x.com", status=AccountStatus.PENDING)
    ticket = await verification.issue(user)
    binding = ChannelBinding(email="ann@x.com")
    await verification.verify(ticket.code, binding)

    with pytest.raises(CodeInvalid):
        await verification.verify(ticket.code, binding)


@pytest.mark.parametrize(
    "binding",
    [
        ChannelBinding(),
        ChannelBinding(email="someone-else@x.com"),
        ChannelBinding(country_code="UZ", phone_number="901234567"),
    ],
)
async def test_binding_must_match_code_owner(verification, make_user, binding):
    user = await make_user(email="ann@x.com", status=AccountStatus.PENDING)
    ticket = await verification.issue(user)

    with pytest.raises(ChannelMismatch):
        await verification.verify(ticket.code, binding)
    assert user.is_pending


async def test_code_is_valid_up_to_and_including_expiry_instant(session, verification, make_user, monkeypatch):
    user = await make_user(email="ann@x.com", status=AccountStatus.PENDING)
    ticket = await verification.issue(user)
    await session.commit()

    monkeypatch.setattr(verification_module, "utcnow", lambda: ticket.expires_at)
    verified = await verification.verify(ticket.code, ChannelBinding(email="ann@x.com"))

    assert verified.is_active


async def test_code_past_expiry_is_expired(session, verification, make_user, monkeypatch):
    user = await make_user(email="ann@x.com", status=AccountStatus.PENDING)
    ticket = await verification.issue(user)
    await session.commit()

    monkeypatch.setattr(verification_module, "utcnow", lambda: ticket.expires_at + timedelta(microseconds=1))
    with pytest.raises(CodeExpired):
        await verification.verify(ticket.code, ChannelBinding(email="ann@x.com"))
    assert user.is_pending
