from typing import Optional, TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone

if TYPE_CHECKING:
    from crm.users.models import User
    from crm.leads.models import Lead

class Activity(SQLModel, table=True):
    """An interaction logged against a lead. Never updated after insert."""

    id: Optional[int] = Field(default=None, primary_key=True)
    lead_id: int = Field(foreign_key="lead.id", ondelete="CASCADE", index=True)
    user_id: int = Field(foreign_key="user.id")
    type: str
    subject: str
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    lead: Optional["Lead"] = Relationship(back_populates="activities")
    author: Optional["User"] = Relationship(back_populates="activities")
