"""
Authentication and service dependencies for FastAPI.
"""
from fastapi import Depends, HTTPException, status, Security
from fastapi.security import HTTPAuthorizationCredentials
from starlette.concurrency import run_in_threadpool

from auth.security import security
from core.entities import User, UserRole
from core.logger import logger
from services.admin_logger import AdminLogger
from services.data_service import DataService, request_access_token
import config


def get_data_service() -> DataService:
    """Active data service."""
    if not config.data_service:
        raise HTTPException(status_code=503, detail="Data service not initialized")
    return config.data_service


def get_admin_logger() -> AdminLogger:
    """Active admin activity logger."""
    if not config.admin_logger:
        raise HTTPException(status_code=503, detail="Admin logger not initialized")
    return config.admin_logger


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    data_service: DataService = Depends(get_data_service)
) -> User:
    """
    Resolve the bearer token to a user through the data service.

    The token is also bound to the request context so adapters that forward
    credentials act as this caller. Async so the binding is made in the
    request task and is seen by the (threadpool) route handler.

    Raises:
        HTTPException: 401 if the token is invalid, 502 if the backend cannot be asked
    """
    try:
        user = await run_in_threadpool(data_service.get_current_user, credentials.credentials)
    except Exception as e:
        logger.error(f"Token lookup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Authentication backend unavailable",
        )

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request_access_token.set(credentials.credentials)
    return user


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """Current user, who must be an admin. Entries logged during the request are attributed to them."""
    if current_user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    if config.admin_logger is not None:
        config.admin_logger.set_current_admin_id(current_user.id)
    return current_user
