import logging
from typing import Optional, List
from sqlmodel import Session, select
from passlib.context import CryptContext

from crm.database import commit_or_raise
from crm.exceptions import ConstraintViolation
from crm.users.models import User
from crm.users.schemas import UserCreate

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)

def get_user_by_username(session: Session, username: str) -> Optional[User]:
    return session.exec(select(User).where(User.username == username)).first()

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()

def create_user(session: Session, user_create: UserCreate) -> User:
    if get_user_by_username(session, user_create.username):
        raise ConstraintViolation(f"Username '{user_create.username}' already exists")
    if get_user_by_email(session, user_create.email):
        raise ConstraintViolation(f"Email '{user_create.email}' already registered")

    hashed_password = get_password_hash(user_create.password)
    user_data = user_create.model_dump(exclude={"password"})
    db_user = User(**user_data, hashed_password=hashed_password)
    session.add(db_user)
    # A concurrent registration can still win the race; the unique index catches it
    commit_or_raise(session, f"Creating user '{user_create.username}'")
    session.refresh(db_user)
    logger.info("Created user %s (%s) with role %s", db_user.id, db_user.username, db_user.role.value)
    return db_user

def list_users(session: Session) -> List[User]:
    """All users, newest first."""
    return session.exec(select(User).order_by(User.created_at.desc(), User.id.desc())).all()
