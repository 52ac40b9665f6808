from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlmodel import Session
from typing import List

from crm.database import get_session
from crm.auth.dependencies import get_current_user
from crm.auth.policy import Action, Scope, require, require_owner, resolve_owner
from crm.exceptions import NotFound
from crm.users.models import User
from crm.leads.schemas import LeadCreate, LeadDetail, LeadUpdate, LeadWithOwner
from crm.leads import service
from crm.realtime.events import LeadCreated, LeadDeleted, LeadRef, LeadUpdated
from crm.realtime.manager import ConnectionRegistry, get_connections

router = APIRouter(prefix="/api/leads", tags=["leads"])

def _get_existing_lead(session: Session, lead_id: int) -> LeadDetail:
    lead = service.get_lead(session, lead_id)
    if not lead:
        raise NotFound("Lead not found")
    return lead

@router.get("", response_model=List[LeadWithOwner])
def read_leads(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    return service.list_leads(session, current_user.id, current_user.role)

@router.get("/{lead_id}", response_model=LeadDetail)
def read_lead(
    lead_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    require(current_user, Action.READ_LEAD)
    # 404 before 403 so a missing lead looks the same to every role
    lead = _get_existing_lead(session, lead_id)
    require_owner(current_user, Action.READ_LEAD, lead.owner_id)
    return lead

@router.post("", response_model=LeadWithOwner, status_code=status.HTTP_201_CREATED)
def create_lead(
    lead_create: LeadCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections)
):
    owner_id = resolve_owner(current_user, lead_create.owner_id)
    lead = service.create_lead(session, lead_create, owner_id)

    created = service.get_lead_with_owner(session, lead.id)
    background_tasks.add_task(connections.broadcast, LeadCreated(data=created), {created.owner_id})
    return created

@router.put("/{lead_id}", response_model=LeadWithOwner)
def update_lead(
    lead_id: int,
    lead_update: LeadUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections)
):
    scope = require(current_user, Action.UPDATE_LEAD)
    existing = _get_existing_lead(session, lead_id)
    require_owner(current_user, Action.UPDATE_LEAD, existing.owner_id)

    if scope == Scope.OWN and "owner_id" in lead_update.model_fields_set:
        # Sales executives cannot hand their leads to someone else
        lead_update = LeadUpdate(**lead_update.model_dump(exclude_unset=True, exclude={"owner_id"}))

    service.update_lead(session, lead_id, lead_update)

    # Re-read so listeners get the committed row with its owner
    updated = service.get_lead_with_owner(session, lead_id)
    if updated is None:
        # Deleted concurrently after the existence check
        raise NotFound("Lead not found")
    # The previous owner hears about a reassignment too
    background_tasks.add_task(connections.broadcast, LeadUpdated(data=updated), {existing.owner_id, updated.owner_id})
    return updated

@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lead(
    lead_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    connections: ConnectionRegistry = Depends(get_connections)
):
    require(current_user, Action.DELETE_LEAD)
    existing = _get_existing_lead(session, lead_id)
    require_owner(current_user, Action.DELETE_LEAD, existing.owner_id)

    service.delete_lead(session, lead_id)
    background_tasks.add_task(connections.broadcast, LeadDeleted(data=LeadRef(id=lead_id)), {existing.owner_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
