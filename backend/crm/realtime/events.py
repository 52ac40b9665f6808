"""Change events pushed to real-time listeners.

The envelope is ``{"type": ..., "data": ...}``; each ``type`` tag has exactly
one payload shape. Listeners treat every event as a hint to re-fetch.
"""
from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from crm.schemas import CamelModel
from crm.activities.schemas import ActivityWithAuthor
from crm.leads.schemas import LeadWithOwner

class ConnectedMessage(CamelModel):
    type: Literal["connected"] = "connected"
    message: str = "Connected to CRM WebSocket"

class LeadRef(CamelModel):
    id: int

class LeadCreated(CamelModel):
    type: Literal["lead_created"] = "lead_created"
    data: LeadWithOwner

class LeadUpdated(CamelModel):
    type: Literal["lead_updated"] = "lead_updated"
    data: LeadWithOwner

class LeadDeleted(CamelModel):
    type: Literal["lead_deleted"] = "lead_deleted"
    data: LeadRef

class ActivityCreated(CamelModel):
    type: Literal["activity_created"] = "activity_created"
    data: ActivityWithAuthor

ChangeEvent = Annotated[
    Union[LeadCreated, LeadUpdated, LeadDeleted, ActivityCreated],
    Field(discriminator="type"),
]

change_event_adapter = TypeAdapter(ChangeEvent)

def parse_event(raw: str) -> ChangeEvent:
    """Decode a wire envelope; unknown tags or shapes raise pydantic.ValidationError."""
    return change_event_adapter.validate_json(raw)
