import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from orderdesk.config import settings
from orderdesk.database import get_session
from orderdesk.models.user import User

logger = logging.getLogger(__name__)

# tokens are issued by the shop's identity service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

CREDENTIALS_ERROR = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    claims = dict(data)
    claims["exp"] = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_operator_token(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role})


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Operator behind the bearer token. 401 on any token problem, 403 when
    the account has been switched off."""
    payload = decode_access_token(token) if token else None
    if payload is None:
        raise CREDENTIALS_ERROR

    try:
        user_id = int(payload.get("sub") or payload.get("user_id"))
    except (TypeError, ValueError):
        raise CREDENTIALS_ERROR

    user = session.get(User, user_id)
    if user is None:
        raise CREDENTIALS_ERROR

    if not user.can_login:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator account is disabled",
        )

    return user
