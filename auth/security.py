"""
Security utilities for authentication: password hashing and JWT access tokens.
"""
from datetime import timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
import bcrypt
from fastapi.security import HTTPBearer

from core.utils import utcnow
import config

# Password hashing
# Configure to avoid wrap bug detection issues
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b",  # Use bcrypt 2b identifier
    bcrypt__rounds=12  # Standard rounds
)

# JWT settings
SECRET_KEY_ALGORITHM = config.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = config.ACCESS_TOKEN_EXPIRE_MINUTES

# Security schemes
security = HTTPBearer()


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against a hash."""
    if not hashed_password:
        return False
    try:
        # Try direct bcrypt first
        password_bytes = plain_password.encode('utf-8')
        hash_bytes = hashed_password.encode('utf-8')
        return bcrypt.checkpw(password_bytes, hash_bytes)
    except ValueError:
        # Fallback to passlib for hashes bcrypt cannot parse
        return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Raises:
        ValueError: If the password is empty or longer than bcrypt's 72-byte limit
    """
    if not password:
        raise ValueError("Password is required")

    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        raise ValueError("Password cannot be longer than 72 bytes. Please use a shorter password.")

    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password_bytes, salt)
    # Return as string (passlib format: $2b$12$...)
    return hashed.decode('utf-8')


# JWT Token utilities
def create_access_token(
    data: Dict[str, Any],
    secret_key: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in token
        secret_key: Secret key for signing
        expires_delta: Optional expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": utcnow(),
        "type": "access"
    })
    encoded_jwt = jwt.encode(to_encode, secret_key, algorithm=SECRET_KEY_ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str, secret_key: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT access token.

    Args:
        token: JWT token string
        secret_key: Secret key for verification

    Returns:
        Decoded token data or None if invalid
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[SECRET_KEY_ALGORITHM])
        if payload.get("type") != "access":
            return None
        return payload
    except JWTError:
        return None
