"""
JWT encoding/decoding for access and refresh tokens.

Both token kinds carry the identity id as the `id` claim plus `iat`, `exp`
and a random `jti`. They differ only in secret and lifetime, which the
caller supplies. Decoding propagates `jose` errors untouched so the caller
can tell an expired token (`ExpiredSignatureError`) from a forged or
malformed one (`JWTError`).
"""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt


def encode_token(
    identity_id: str,
    secret: str,
    lifetime: timedelta,
    algorithm: str = "HS256",
    issued_at: datetime | None = None,
) -> str:
    issued_at = issued_at or datetime.now(UTC)
    iat = int(issued_at.timestamp())
    claims = {
        "id": identity_id,
        "iat": iat,
        "exp": iat + int(lifetime.total_seconds()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """
    Validate signature and expiry and return the claims.

    Raises:
        jose.ExpiredSignatureError: the token is well-formed but expired.
        jose.JWTError: any other signature/format problem.
    """
    return jwt.decode(token, secret, algorithms=[algorithm])
