from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.errors import AuthenticationError, AuthorizationError
from app.models.user import User

# tokens come from the identity provider; tokenUrl only feeds the docs UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims["exp"] = datetime.utcnow() + lifetime
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    """Claims of a valid, unexpired token, else None."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def _subject(claims: dict) -> Optional[str]:
    subject = claims.get("user_id") or claims.get("sub")
    return str(subject) if subject else None


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    claims = decode_access_token(token) if token else None
    user_id = _subject(claims) if claims else None
    if not user_id:
        raise AuthenticationError()

    user = session.get(User, user_id)
    if user is None:
        raise AuthenticationError()
    if not user.can_login:
        raise AuthorizationError("User account is disabled")

    return user
