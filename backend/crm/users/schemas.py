from pydantic import EmailStr, Field
from datetime import datetime

from crm.schemas import CamelModel
from crm.users.models import Role

class UserBase(CamelModel):
    username: str = Field(min_length=3, max_length=64)
    email: EmailStr
    full_name: str = Field(min_length=1, max_length=255)

class UserCreate(UserBase):
    password: str = Field(min_length=6)
    role: Role = Role.SALES_EXECUTIVE

class UserRegister(UserBase):
    password: str = Field(min_length=6)

class UserRead(CamelModel):
    id: int
    username: str
    email: str
    full_name: str
    role: Role
    created_at: datetime
