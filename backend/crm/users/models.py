from typing import Optional, List, TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from enum import Enum

if TYPE_CHECKING:
    from crm.leads.models import Lead
    from crm.activities.models import Activity

class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    SALES_EXECUTIVE = "sales_executive"

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    email: str = Field(unique=True, index=True)
    full_name: str
    # Salted bcrypt hash; stripped by every read schema
    hashed_password: str
    role: Role = Field(default=Role.SALES_EXECUTIVE)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    leads: List["Lead"] = Relationship(back_populates="owner")
    activities: List["Activity"] = Relationship(back_populates="author")
