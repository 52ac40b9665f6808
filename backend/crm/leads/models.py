from typing import Optional, List, TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from enum import Enum

if TYPE_CHECKING:
    from crm.users.models import User
    from crm.activities.models import Activity

class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"

CLOSED_STATUSES = {LeadStatus.WON, LeadStatus.LOST}

class Lead(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    company_name: str = Field(index=True)
    contact_name: str
    email: str
    phone: Optional[str] = None
    # Any status may follow any other; there is no transition graph
    status: LeadStatus = Field(default=LeadStatus.NEW)
    source: str
    value: Optional[int] = None

    owner_id: int = Field(foreign_key="user.id", index=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    owner: Optional["User"] = Relationship(back_populates="leads")
    activities: List["Activity"] = Relationship(
        back_populates="lead",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
