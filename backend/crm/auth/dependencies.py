from typing import Annotated, Optional
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from crm.auth import service
from crm.config import settings
from crm.database import get_session
from crm.exceptions import Unauthorized
from crm.users.models import User

# Browsers send the session cookie; API clients may send the same token as a bearer header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/login", auto_error=False)

def session_token(request: Request, bearer: Annotated[Optional[str], Depends(oauth2_scheme)]) -> Optional[str]:
    return bearer or request.cookies.get(settings.SESSION_COOKIE_NAME)

def get_current_user(
    token: Annotated[Optional[str], Depends(session_token)],
    session: Session = Depends(get_session)
) -> User:
    user = service.resolve_session(session, token)
    if user is None:
        raise Unauthorized()
    return user
