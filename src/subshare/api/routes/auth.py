"""
Authentication routes for registration and login.
"""

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from subshare.database.connection import get_db
from subshare.database.models import User
from subshare.auth import get_jwt_manager
from subshare.api.middleware.auth_context import get_current_user
from subshare.api.middleware.rate_limiter import rate_limit
from subshare.api.schemas import UserResponse
from subshare.services.accounts import AccountService, AuthResult
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Request/Response models
class RegisterRequest(BaseModel):
    """User registration request."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Authentication token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


def _token_response(result: AuthResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.access_token,
        expires_in=get_jwt_manager().expires_in,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user with an empty wallet.

    Returns an access token so the client is signed in right away.
    """
    result = AccountService(db).register(email=data.email, name=data.name, password=data.password)
    return _token_response(result)


@router.post("/login", response_model=TokenResponse)
@rate_limit(limit=10, window_seconds=60)
async def login(
    request: Request,
    data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Exchange email and password for an access token."""
    result = AccountService(db).login(email=data.email, password=data.password)
    return _token_response(result)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current user information."""
    return user
