from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from almond.core.config import Settings
from almond.core.security import PasswordHasher
from almond.db import create_all, make_engine, make_sessionmaker
from almond.main import create_app
from almond.models.definitions import AccountStatus, Role, Session, User
from almond.repositories import CategoryRepository, SessionRepository, UserRepository
from almond.services import (
    CategoryService,
    NotificationGateway,
    Notifier,
    NotifierError,
    RouteGuard,
    TokenService,
    UserService,
    VerificationService,
)

PASSWORD = "correct-horse-42"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingNotifier(Notifier):
    """Collects messages instead of delivering them."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, destination: str, subject: str, message: str) -> None:
        self.sent.append((destination, subject, message))

    @property
    def last_code(self) -> int:
        return int(self.sent[-1][2].rsplit(" ", 1)[-1])


class UnreachableNotifier(Notifier):
    """Every delivery attempt fails."""

    def __init__(self):
        self.calls = 0

    async def send(self, destination: str, subject: str, message: str) -> None:
        self.calls += 1
        raise NotifierError("gateway unreachable")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL="sqlite+aiosqlite://",
        ACCESS_TOKEN_SECRET="test-access-secret",
        REFRESH_TOKEN_SECRET="test-refresh-secret",
        COOKIE_SECURE=False,
        BCRYPT_ROUNDS=4,
        NOTIFIER_TIMEOUT_SECONDS=1.0,
        NOTIFIER_MAX_ATTEMPTS=1,
        NOTIFIER_BACKOFF_SECONDS=0,
    )


@pytest.fixture
def hasher(settings) -> PasswordHasher:
    return PasswordHasher.from_settings(settings)


@pytest.fixture
def email_outbox() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sms_outbox() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gateway(email_outbox, sms_outbox) -> NotificationGateway:
    return NotificationGateway(
        email=email_outbox, sms=sms_outbox, timeout_seconds=1.0, max_attempts=1, backoff_seconds=0, sms_prefix="+998"
    )


# --- Database ---


@pytest.fixture
async def engine(settings):
    engine = make_engine(settings.DATABASE_URL)
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


# --- Services ---


@pytest.fixture
def user_repo(session) -> UserRepository:
    return UserRepository(session)


@pytest.fixture
def verification(session, user_repo) -> VerificationService:
    return VerificationService(session, user_repo, code_ttl=timedelta(minutes=10))


@pytest.fixture
def token_service(session, settings) -> TokenService:
    return TokenService(session, SessionRepository(session), settings)


@pytest.fixture
def user_service(session, user_repo, verification, gateway, token_service, hasher) -> UserService:
    return UserService(session, user_repo, verification, gateway, token_service, hasher)


@pytest.fixture
def guard(session, settings) -> RouteGuard:
    return RouteGuard(session, SessionRepository(session), settings)


@pytest.fixture
def category_service(session) -> CategoryService:
    return CategoryService(session, CategoryRepository(session))


@pytest.fixture
def make_user(session, hasher):
    """Inserts an identity directly; active unless told otherwise."""
    counter = iter(range(1, 10_000))

    async def _make_user(
        status: AccountStatus = AccountStatus.ACTIVE,
        role: Role = Role.USER,
        password: str = PASSWORD,
        **fields,
    ) -> User:
        n = next(counter)
        fields.setdefault("email", f"user{n}@almond.uz")
        user = User(
            first_name=fields.pop("first_name", "Test"),
            username=fields.pop("username", f"user-{n}"),
            password_hash=hasher.hash(password),
            account_status=status.value,
            role=role.value,
            **fields,
        )
        session.add(user)
        await session.commit()
        return user

    return _make_user


# --- HTTP ---


@pytest.fixture
def app(settings, gateway):
    return create_app(settings, notifier=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


async def list_sessions(session, user_id: str) -> list[Session]:
    stmt = select(Session).where(Session.user_id == user_id).order_by(Session.logged_at)
    return list((await session.scalars(stmt)).all())
