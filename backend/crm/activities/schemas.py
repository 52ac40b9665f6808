from pydantic import Field
from datetime import datetime
from typing import Optional

from crm.schemas import CamelModel
from crm.users.schemas import UserRead

class ActivityCreate(CamelModel):
    lead_id: int
    # Open set; the UI offers note, call, meeting and email
    type: str = Field(min_length=1, max_length=32)
    subject: str = Field(min_length=1, max_length=255)
    notes: Optional[str] = None

class ActivityRead(CamelModel):
    id: int
    lead_id: int
    user_id: int
    type: str
    subject: str
    notes: Optional[str] = None
    created_at: datetime

class ActivityWithAuthor(ActivityRead):
    # None when the author row no longer exists
    user: Optional[UserRead] = None
