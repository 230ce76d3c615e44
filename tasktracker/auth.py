import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Header
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models
from .config import get_settings
from .database import get_db
from .errors import AuthError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

BEARER_PREFIX = "Bearer "


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    expire = models.utcnow() + (expires_delta or timedelta(days=settings.token_expire_days))
    to_encode = {"userId": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """Return the user id carried by a valid token, or raise AuthError."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError("Token has expired")
    except JWTError:
        raise AuthError("Invalid token")

    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        raise AuthError("Invalid token")
    return user_id


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> models.User:
    """Resolve the bearer token on the request to a stored user."""
    if not authorization:
        raise AuthError("No authorization header provided")
    if not authorization.startswith(BEARER_PREFIX):
        raise AuthError("Invalid authorization format. Use Bearer token")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthError("No token provided")

    try:
        user_id = decode_access_token(token)
    except AuthError as exc:
        logger.info("Rejected bearer token: %s", exc.message)
        raise

    user = db.get(models.User, user_id)
    if user is None:
        logger.info("Token references missing user id=%s", user_id)
        raise AuthError("User not found")
    return user
