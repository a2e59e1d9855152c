from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(
    *,
    user_id: str,
    secret: str,
    role: str = "user",
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=30))
    payload = {"sub": user_id, "role": role, "iat": now, "exp": exp}
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> TokenClaims:
    """Verify a bearer token issued by the identity provider.

    The role is read from a top-level ``role`` claim, falling back to
    ``app_metadata.role`` as hosted auth providers nest it there.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms), options={"verify_aud": False})
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise ValueError("token missing sub")

    role = payload.get("role")
    app_metadata = payload.get("app_metadata")
    if isinstance(app_metadata, dict) and app_metadata.get("role"):
        role = app_metadata["role"]
    return TokenClaims(user_id=sub, role=str(role or "user"))
