"""
Authentication context: who is calling, taken from the Bearer JWT.
"""

from typing import Optional

from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.middleware.base import BaseHTTPMiddleware
from jose import JWTError
from sqlalchemy.orm import Session

from subshare.auth import verify_token
from subshare.database.connection import get_db
from subshare.database.models import User
from subshare.utils.exceptions import AuthenticationError, ForbiddenError
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

# Missing credentials are reported as AuthenticationError, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def _user_id_from_token(token: str) -> int:
    try:
        payload = verify_token(token, token_type="access")
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        raise AuthenticationError("Could not validate credentials") from e


class AuthContextMiddleware(BaseHTTPMiddleware):
    """
    Puts the caller's user id on request.state when a valid token is sent.

    Does not reject anything: protected routes enforce auth through
    get_current_user. The rate limiter keys on request.state.user_id.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            try:
                request.state.user_id = _user_id_from_token(auth_header.split(" ", 1)[1])
            except AuthenticationError:
                logger.debug(f"Ignoring invalid token on {request.url.path}")

        return await call_next(request)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get current authenticated user.

    Usage:
        @router.get("/profile")
        async def profile(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    user_id = _user_id_from_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is disabled")

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Ensure current user has admin privileges."""
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user
