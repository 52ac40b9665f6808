from crm.schemas import CamelModel
from crm.users.schemas import UserRead

class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
