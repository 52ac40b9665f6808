from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import List

from crm.database import get_session
from crm.auth.dependencies import get_current_user
from crm.auth.policy import Action, require
from crm.users.schemas import UserRead
from crm.users.models import User
from crm.users import service

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("", response_model=List[UserRead])
def read_users(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    require(current_user, Action.READ_USERS)
    return service.list_users(session)
