import logging
from typing import List
from sqlmodel import Session, select

from crm.auth.policy import Action, owner_filter
from crm.database import commit_or_raise
from crm.exceptions import ValidationError
from crm.activities.models import Activity
from crm.activities.schemas import ActivityCreate, ActivityWithAuthor
from crm.leads.models import Lead
from crm.users.models import User, Role
from crm.users.schemas import UserRead

logger = logging.getLogger(__name__)

def create_activity(session: Session, activity_create: ActivityCreate, user_id: int) -> Activity:
    if session.get(Lead, activity_create.lead_id) is None:
        raise ValidationError(f"Lead {activity_create.lead_id} does not exist")
    if session.get(User, user_id) is None:
        raise ValidationError(f"User {user_id} does not exist")

    db_activity = Activity(**activity_create.model_dump(), user_id=user_id)
    session.add(db_activity)
    commit_or_raise(session, "Creating activity")
    session.refresh(db_activity)
    logger.info("User %s logged %s activity %s on lead %s",
                user_id, db_activity.type, db_activity.id, db_activity.lead_id)
    return db_activity

def list_activities(session: Session, lead_id: int) -> List[ActivityWithAuthor]:
    """Activities on a lead, newest first, each with its author (None if the author is gone)."""
    rows = session.exec(
        select(Activity, User)
        .join(User, Activity.user_id == User.id, isouter=True)
        .where(Activity.lead_id == lead_id)
        .order_by(Activity.created_at.desc(), Activity.id.desc())
    ).all()
    return [
        ActivityWithAuthor(**activity.model_dump(), user=UserRead.model_validate(author) if author else None)
        for activity, author in rows
    ]

def list_visible_activities(session: Session, acting_user_id: int, acting_role: Role) -> List[Activity]:
    """Activities attached to leads the caller may see, for dashboard rollups."""
    query = select(Activity).join(Lead, Activity.lead_id == Lead.id)

    restrict_to = owner_filter(acting_user_id, acting_role, Action.READ_STATS)
    if restrict_to is not None:
        query = query.where(Lead.owner_id == restrict_to)

    return session.exec(query.order_by(Activity.created_at.desc())).all()
