from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from sqlmodel import Session

from crm.users.models import User
from crm.users import service as user_service
from crm.config import settings

# Configuration
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
SECRET_KEY = settings.SECRET_KEY

def authenticate_user(session: Session, username: str, password: str) -> Optional[User]:
    user = user_service.get_user_by_username(session, username)
    if not user:
        return None
    if not user_service.verify_password(password, user.hashed_password):
        return None
    return user

def create_access_token(user_id: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> Optional[int]:
    """User id carried by a valid token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return int(subject)
    except ValueError:
        return None

def resolve_session(session: Session, token: Optional[str]) -> Optional[User]:
    """Map a session token to its user; absent for missing, bad or orphaned tokens."""
    if not token:
        return None
    user_id = decode_access_token(token)
    if user_id is None:
        return None
    return user_service.get_user(session, user_id)
