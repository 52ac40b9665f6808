import logging
from typing import Annotated
from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from crm.database import get_session
from crm.config import settings
from crm.exceptions import Unauthorized, ValidationError
from crm.auth.dependencies import get_current_user
from crm.auth.schemas import Token
from crm.auth import service
from crm.users.models import User, Role
from crm.users.schemas import UserCreate, UserRead, UserRegister
from crm.users import service as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )

@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(user_register: UserRegister, response: Response, session: Session = Depends(get_session)):
    if user_service.get_user_by_username(session, user_register.username):
        raise ValidationError("Username already exists")
    if user_service.get_user_by_email(session, user_register.email):
        raise ValidationError("Email already registered")

    # Self-registration never grants a privileged role; admins are provisioned via the CLI
    user_create = UserCreate(**user_register.model_dump(), role=Role.SALES_EXECUTIVE)
    user = user_service.create_user(session, user_create)
    _set_session_cookie(response, service.create_access_token(user.id))
    return user

@router.post("/login", response_model=Token)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    response: Response,
    session: Session = Depends(get_session)
):
    user = service.authenticate_user(session, form_data.username, form_data.password)
    if not user:
        # Same message whichever half was wrong
        raise Unauthorized("Invalid username or password")

    access_token = service.create_access_token(user.id)
    _set_session_cookie(response, access_token)
    logger.info("User %s logged in", user.id)
    return Token(access_token=access_token, user=UserRead.model_validate(user))

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout():
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response

@router.get("/user", response_model=UserRead)
def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
