"""
Operational error taxonomy.

Services raise these with message *keys*; the HTTP layer resolves the keys
against the request locale (see `almond.core.i18n`) when rendering the
error envelope. Anything that is not an `AppError` is a programming error
and is rendered as a generic 500 by the catch-all handler.
"""


class AppError(Exception):
    status_code: int = 500
    default_key: str = "something_went_wrong"

    # Token failures tell the client whether to renew or log in again.
    is_token_error: bool = False
    clear_refresh_cookie: bool = False

    def __init__(self, key: str | None = None, *, fields: dict[str, str] | None = None):
        self.key = key or self.default_key
        self.fields = fields or {}
        super().__init__(self.key if not self.fields else ", ".join(f"{k}: {v}" for k, v in self.fields.items()))

    @property
    def status(self) -> str:
        return "failure" if 400 <= self.status_code < 500 else "error"


# --- 400 ---


class ValidationError(AppError):
    """Input rejected. Carries either one message key or a {field: key} map."""

    status_code = 400
    default_key = "invalid_field"


class ConflictError(AppError):
    """Uniqueness violation detected by a pre-check or by a store constraint."""

    status_code = 400
    default_key = "category_slug_taken"


class AlreadyExists(ConflictError):
    default_key = "email_already_exists"


class DuplicateCode(ConflictError):
    default_key = "duplicate_code"


# --- Verification (400) ---


class VerifyError(ValidationError):
    pass


class CodeAbsent(VerifyError):
    default_key = "code_absent"


class CodeNotNumeric(VerifyError):
    default_key = "code_not_numeric"


class ChannelMismatch(VerifyError):
    default_key = "cookies_modified"


class CodeInvalid(VerifyError):
    default_key = "code_invalid"


class CodeExpired(VerifyError):
    default_key = "code_expired"


# --- 401 / 403 ---


class AuthError(AppError):
    status_code = 401
    default_key = "incorrect_credentials_email"


class PermissionDenied(AppError):
    status_code = 403
    default_key = "not_allowed"


class TokenError(AppError):
    status_code = 401
    default_key = "invalid_token"
    is_token_error = True


class InvalidToken(TokenError):
    clear_refresh_cookie = True


class ExpiredToken(TokenError):
    status_code = 403
    default_key = "expired_token"
    clear_refresh_cookie = True


class PasswordChanged(TokenError):
    default_key = "user_changed_password"


class AccessTokenExpired(TokenError):
    """Rendered as a bare 403: the client should renew its access token."""

    status_code = 403
    default_key = "expired_token"


# --- 404 ---


class NotFoundError(AppError):
    status_code = 404
    default_key = "route_not_found"


# --- 500 ---


class DependencyError(AppError):
    """An external collaborator (notifier, geolocation) failed."""

    status_code = 500
    default_key = "sending_verification_code"


class NotifierFailure(DependencyError):
    pass


class NotifierTimeout(DependencyError):
    pass
