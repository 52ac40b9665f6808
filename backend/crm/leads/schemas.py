from pydantic import EmailStr, Field, model_validator
from datetime import datetime
from typing import Optional, List

from crm.schemas import CamelModel
from crm.leads.models import LeadStatus
from crm.users.schemas import UserRead
from crm.activities.schemas import ActivityWithAuthor

class LeadBase(CamelModel):
    company_name: str = Field(min_length=1, max_length=255)
    contact_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    source: str = Field(min_length=1, max_length=64)
    value: Optional[int] = Field(default=None, ge=0)

class LeadCreate(LeadBase):
    # Ignored for sales executives; defaults to the caller otherwise
    owner_id: Optional[int] = None

class LeadUpdate(CamelModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    status: Optional[LeadStatus] = None
    source: Optional[str] = Field(default=None, min_length=1, max_length=64)
    value: Optional[int] = Field(default=None, ge=0)
    owner_id: Optional[int] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        # owner_id is checked once the caller's role is known
        required = ("company_name", "contact_name", "email", "status", "source")
        nulled = [name for name in required if name in self.model_fields_set and getattr(self, name) is None]
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self

class LeadRead(LeadBase):
    id: int
    email: str
    owner_id: int
    created_at: datetime
    updated_at: datetime

class LeadWithOwner(LeadRead):
    # None when the owning user row no longer exists
    owner: Optional[UserRead] = None

class LeadDetail(LeadWithOwner):
    activities: List[ActivityWithAuthor] = []
