import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.exceptions import InvalidTokenError

# Initialize logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token is optional here; the authorization layer decides what a
# missing session means for each route.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


@dataclass(frozen=True)
class Session:
    """Authenticated actor as carried by the access token."""

    user_id: str
    tenant_id: Optional[str]
    role: Optional[str]
    email: Optional[str] = None


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """Spend the same time as a real check when there is no hash to compare."""
    pwd_context.dummy_verify()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (user id) in token data.")

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_session_token(user_id: str, tenant_id: str, role: str, email: str | None = None) -> str:
    return create_access_token({"sub": user_id, "tenant_id": tenant_id, "role": role, "email": email})


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        logger.info("Token expired")
        raise InvalidTokenError("Token has expired")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenError()

    if payload.get("sub") is None:
        logger.warning("Token is missing 'sub' claim")
        raise InvalidTokenError("Token does not contain 'sub' field")
    return payload


def session_from_token(token: str) -> Session:
    payload = decode_access_token(token)
    return Session(
        user_id=payload["sub"],
        tenant_id=payload.get("tenant_id"),
        role=payload.get("role"),
        email=payload.get("email"),
    )


async def get_session(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[Session]:
    """
    Resolve the current session from the bearer token or ``access_token`` cookie.

    Returns None when no credentials were sent; a malformed or expired token
    raises InvalidTokenError.
    """
    token = token or request.cookies.get("access_token")
    if not token:
        return None
    return session_from_token(token)
