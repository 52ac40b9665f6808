from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlmodel import Session

from crm.database import get_session
from crm.auth.dependencies import get_current_user
from crm.auth.policy import Action, require, require_owner
from crm.exceptions import NotFound
from crm.users.models import User
from crm.users.schemas import UserRead
from crm.activities.schemas import ActivityCreate, ActivityRead, ActivityWithAuthor
from crm.activities import service
from crm.leads.models import Lead
from crm.realtime.events import ActivityCreated
from crm.realtime.manager import ConnectionRegistry, get_connections

router = APIRouter(prefix="/api/activities", tags=["activities"])

@router.post("", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
def create_activity(
    activity_create: ActivityCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections)
):
    require(current_user, Action.CREATE_ACTIVITY)
    lead = session.get(Lead, activity_create.lead_id)
    if not lead:
        raise NotFound("Lead not found")
    require_owner(
        current_user,
        Action.CREATE_ACTIVITY,
        lead.owner_id,
        "Forbidden: You can only add activities to your own leads",
    )

    # The author is always the caller, whatever the body says
    activity = service.create_activity(session, activity_create, current_user.id)

    event_data = ActivityWithAuthor(**activity.model_dump(), user=UserRead.model_validate(current_user))
    background_tasks.add_task(connections.broadcast, ActivityCreated(data=event_data), {lead.owner_id})
    return activity
