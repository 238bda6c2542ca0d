from pydantic import BaseModel

from roombooker.domain.enums import Role


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class CurrentUser(BaseModel):
    id: int
    name: str
    role: Role
