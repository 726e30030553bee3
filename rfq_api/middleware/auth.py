from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from rfq_api.database import get_db
from rfq_api.errors import ForbiddenError
from rfq_api.services.auth_service import verify_access_token
from rfq_api.services.directory import SQLIdentityDirectory

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)

KNOWN_ROLES = ("admin", "buyer", "seller")


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": {"code": code, "message": message}},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """FastAPI dependency: extract and verify the bearer JWT."""
    if credentials is None:
        raise _unauthorized("AUTH_TOKEN_MISSING", "Not authorized, no token provided")
    try:
        claims = verify_access_token(credentials.credentials)
    except JWTError as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise _unauthorized("AUTH_TOKEN_INVALID", "Invalid or expired token")
    if claims["role"] not in KNOWN_ROLES:
        logger.warning("auth_role_unknown", role=claims["role"])
        raise _unauthorized("AUTH_TOKEN_INVALID", "Unknown role in token")
    return claims


async def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Resolve the acting principal {"user_id", "role"}.

    Sellers may only act once the identity service has approved them.
    """
    if claims["role"] == "seller":
        seller_status = await SQLIdentityDirectory(db).seller_status(claims["user_id"])
        if seller_status != "approved":
            logger.info(
                "seller_not_approved",
                seller_id=claims["user_id"],
                seller_status=seller_status,
            )
            raise ForbiddenError(
                "Seller account is not approved", code="SELLER_NOT_APPROVED"
            )
    return claims
