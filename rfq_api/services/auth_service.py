from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
import structlog

from rfq_api.config import settings

logger = structlog.get_logger()

# Tokens are minted by the identity service. create_access_token exists for
# local tooling and tests, which share the configured secret.

# ---------- key loading ----------

_public_key: Optional[str] = None


def _verification_key() -> str:
    global _public_key
    if settings.JWT_ALGORITHM.startswith("HS"):
        return settings.JWT_SECRET
    if _public_key is None:
        with open(settings.JWT_PUBLIC_KEY_PATH, "r") as f:
            _public_key = f.read()
    return _public_key


# ---------- token generation ----------

def create_access_token(user_id: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "type": "access",
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ---------- token verification ----------

def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises JWTError on failure."""
    return jwt.decode(token, _verification_key(), algorithms=[settings.JWT_ALGORITHM])


def verify_access_token(token: str) -> dict:
    """
    Verify an access token and return normalised claims {"user_id", "role"}.

    Legacy tokens from the marketplace identity service carry {id, userType}
    instead of {sub, role}; both shapes are accepted.
    """
    payload = decode_token(token)
    if payload.get("type", "access") != "access":
        raise JWTError("Not an access token")
    user_id = payload.get("sub") or payload.get("id")
    role = payload.get("role") or payload.get("userType")
    if not user_id or not role:
        raise JWTError("Token is missing subject or role")
    return {"user_id": str(user_id), "role": role}
