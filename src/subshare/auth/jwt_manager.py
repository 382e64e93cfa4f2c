"""
JWT token management for authentication.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import uuid

from jose import JWTError, jwt

from subshare.utils.config import get_config
from subshare.utils.exceptions import ConfigurationError
from subshare.utils.logger import get_logger

logger = get_logger(__name__)


class JWTManager:
    """
    Manages JWT access token creation and verification.

    Tokens carry the user id in `sub` plus email and role.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        """
        Initialize JWT manager.

        Args:
            secret_key: Secret key for signing tokens
            algorithm: Signing algorithm (HS256 by default)
            access_token_expire_minutes: Access token TTL in minutes
        """
        config = get_config()
        self.secret_key = secret_key or config.secret_key
        if not self.secret_key:
            raise ConfigurationError("SECRET_KEY environment variable is required for JWT")

        self.algorithm = algorithm or config.jwt_algorithm
        expire_minutes = access_token_expire_minutes or config.access_token_expire_minutes
        self.access_token_expire = timedelta(minutes=expire_minutes)

        logger.info(f"Initialized JWT manager (algorithm={self.algorithm}, access_ttl={expire_minutes}m)")

    def create_access_token(
        self,
        user_id: int,
        email: str,
        role: str,
        additional_claims: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Create access token for authenticated user.

        Args:
            user_id: User id
            email: User email
            role: User role (user, admin)
            additional_claims: Optional additional claims to include

        Returns:
            JWT access token string
        """
        now = datetime.now(timezone.utc)
        expires = now + self.access_token_expire

        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": "access",
            "iat": now,
            "exp": expires,
            "jti": str(uuid.uuid4())
        }

        if additional_claims:
            payload.update(additional_claims)

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Created access token for user {user_id} (expires in {self.access_token_expire})")

        return token

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Verify and decode JWT token.

        Raises:
            JWTError: If token is invalid, expired or of the wrong type
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])

            if payload.get("type") != token_type:
                raise JWTError(f"Invalid token type: expected {token_type}, got {payload.get('type')}")

            return payload

        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            raise

    @property
    def expires_in(self) -> int:
        return int(self.access_token_expire.total_seconds())


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create global JWT manager instance."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def create_access_token(user_id: int, email: str, role: str) -> str:
    """Convenience function to create access token."""
    return get_jwt_manager().create_access_token(user_id, email, role)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    """Convenience function to verify token."""
    return get_jwt_manager().verify_token(token, token_type)
