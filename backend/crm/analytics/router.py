from fastapi import APIRouter, Depends
from sqlmodel import Session

from crm.database import get_session
from crm.auth.dependencies import get_current_user
from crm.auth.policy import Action, require
from crm.analytics.schemas import Analytics, DashboardStats
from crm.analytics import service
from crm.activities import service as activity_service
from crm.leads import service as lead_service
from crm.users import service as user_service
from crm.users.models import User

router = APIRouter(prefix="/api", tags=["analytics"])

@router.get("/stats", response_model=DashboardStats)
def read_stats(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    require(current_user, Action.READ_STATS)
    leads = lead_service.list_leads(session, current_user.id, current_user.role)
    activities = activity_service.list_visible_activities(session, current_user.id, current_user.role)
    return service.compute_stats(leads, activities)

@router.get("/analytics", response_model=Analytics)
def read_analytics(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    require(current_user, Action.READ_ANALYTICS)
    leads = lead_service.list_leads(session, current_user.id, current_user.role)
    users = user_service.list_users(session)
    return service.compute_analytics(leads, users)
