import logging
from typing import Optional, List
from sqlmodel import Session, select
from datetime import datetime, timezone

from crm.auth.policy import Action, owner_filter
from crm.database import commit_or_raise
from crm.exceptions import ValidationError
from crm.activities import service as activity_service
from crm.leads.models import Lead
from crm.leads.schemas import LeadCreate, LeadUpdate, LeadWithOwner, LeadDetail
from crm.users.models import User, Role
from crm.users.schemas import UserRead

logger = logging.getLogger(__name__)

def _with_owner(lead: Lead, owner: Optional[User]) -> LeadWithOwner:
    return LeadWithOwner(**lead.model_dump(), owner=UserRead.model_validate(owner) if owner else None)

def _lead_with_owner_query():
    # Outer join: a lead whose owner row is gone is still listed, with owner=None
    return select(Lead, User).join(User, Lead.owner_id == User.id, isouter=True)

def _ensure_owner_exists(session: Session, owner_id: Optional[int]) -> None:
    if owner_id is None:
        raise ValidationError("owner_id cannot be null")
    if session.get(User, owner_id) is None:
        raise ValidationError(f"Owner {owner_id} does not exist")

def list_leads(session: Session, acting_user_id: int, acting_role: Role) -> List[LeadWithOwner]:
    """Leads visible to the caller, newest first. Sales executives only see their own."""
    query = _lead_with_owner_query()

    restrict_to = owner_filter(acting_user_id, acting_role, Action.READ_LEADS)
    if restrict_to is not None:
        query = query.where(Lead.owner_id == restrict_to)

    rows = session.exec(query.order_by(Lead.created_at.desc(), Lead.id.desc())).all()
    return [_with_owner(lead, owner) for lead, owner in rows]

def get_lead_with_owner(session: Session, lead_id: int) -> Optional[LeadWithOwner]:
    row = session.exec(_lead_with_owner_query().where(Lead.id == lead_id)).first()
    if row is None:
        return None
    lead, owner = row
    return _with_owner(lead, owner)

def get_lead(session: Session, lead_id: int) -> Optional[LeadDetail]:
    """Lead with its owner and its activities (newest first, each with author)."""
    lead = get_lead_with_owner(session, lead_id)
    if lead is None:
        return None
    activities = activity_service.list_activities(session, lead_id)
    return LeadDetail(**lead.model_dump(), activities=activities)

def create_lead(session: Session, lead_create: LeadCreate, owner_id: int) -> Lead:
    _ensure_owner_exists(session, owner_id)

    db_lead = Lead(**lead_create.model_dump(exclude={"owner_id"}), owner_id=owner_id)
    session.add(db_lead)
    commit_or_raise(session, "Creating lead")
    session.refresh(db_lead)
    logger.info("Created lead %s owned by user %s", db_lead.id, owner_id)
    return db_lead

def update_lead(session: Session, lead_id: int, lead_update: LeadUpdate) -> Optional[Lead]:
    """Merge the supplied fields onto the row. No version check: last write wins."""
    db_lead = session.get(Lead, lead_id)
    if db_lead is None:
        return None

    update_data = lead_update.model_dump(exclude_unset=True)
    if "owner_id" in update_data:
        _ensure_owner_exists(session, update_data["owner_id"])

    for key, value in update_data.items():
        setattr(db_lead, key, value)

    db_lead.updated_at = datetime.now(timezone.utc)
    session.add(db_lead)
    commit_or_raise(session, f"Updating lead {lead_id}")
    session.refresh(db_lead)
    logger.info("Updated lead %s fields=%s", lead_id, sorted(update_data))
    return db_lead

def delete_lead(session: Session, lead_id: int) -> None:
    """Delete the lead and every activity under it in one transaction."""
    db_lead = session.get(Lead, lead_id)
    if db_lead is None:
        return
    activity_count = len(db_lead.activities)
    # ORM cascade deletes the loaded activities in the same flush as the lead
    session.delete(db_lead)
    commit_or_raise(session, f"Deleting lead {lead_id}")
    logger.info("Deleted lead %s and %s activities", lead_id, activity_count)
