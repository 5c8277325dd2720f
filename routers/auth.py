"""
Admin authentication endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Security
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr
from typing import Optional

from auth.dependencies import get_admin_logger, get_current_admin, get_data_service
from auth.security import security
from core.entities import AdminEntityType, AuthSession, User, UserRole
from core.logger import logger
from services.admin_logger import AdminLogger
from services.data_service import DataService, request_access_token


router = APIRouter(prefix="/api/auth", tags=["authentication"])


# Request/Response Models
class LoginRequest(BaseModel):
    """Admin login request."""
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    """Account registration request."""
    email: EmailStr
    password: str
    full_name: str
    role: UserRole = UserRole.USER


class TokenResponse(BaseModel):
    """Session token plus the signed-in user."""
    token: Optional[str] = None
    access_token: Optional[str] = None
    token_type: str = "bearer"
    user: User


def _token_response(session: AuthSession) -> TokenResponse:
    return TokenResponse(
        token=session.access_token,
        access_token=session.access_token,
        user=session.user,
    )


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """
    Sign in to the admin dashboard.
    Only accounts with the admin role may sign in.
    """
    result = data_service.sign_in(credentials.email, credentials.password)
    if result.error or result.data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error or "Invalid login credentials",
        )

    user = result.data.user
    if user.role != UserRole.ADMIN.value:
        logger.warning(f"Non-admin sign-in rejected: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    # Audit writes made while signing in act as the new session
    request_access_token.set(result.data.access_token)
    admin_logger.set_current_admin_id(user.id)
    admin_logger.log_login(metadata={"user_email": user.email})
    return _token_response(result.data)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    """
    Create a sign-in account and return a session for it.
    Only admins may register accounts; the role defaults to user.
    """
    result = data_service.sign_up(request.email, request.password, request.full_name, request.role)
    if result.error or result.data is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.error or "Registration failed",
        )
    user = result.data.user

    admin_logger.log_create(
        AdminEntityType.USER,
        user.id,
        f'Registered account for "{user.email}" with role "{user.role}"',
        {"user_email": user.email, "user_role": user.role, "account_type": "registration"},
    )
    return _token_response(result.data)


@router.post("/logout")
def logout(
    credentials: HTTPAuthorizationCredentials = Security(security),
    current_admin: User = Depends(get_current_admin),
    data_service: DataService = Depends(get_data_service),
    admin_logger: AdminLogger = Depends(get_admin_logger)
):
    result = data_service.sign_out(credentials.credentials)
    if result.error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    admin_logger.log_logout(metadata={"user_email": current_admin.email})
    return {"message": "Logged out"}


@router.get("/me", response_model=User)
def me(current_admin: User = Depends(get_current_admin)):
    return current_admin
