"""Identity schemas shared by the API layer and the core services."""
from pydantic import BaseModel

from dashhub.core.enums import Role


class Identity(BaseModel):
    """Authenticated caller, resolved once per request."""
    user_id: int
    role: Role


class UserBrief(BaseModel):
    """Minimal user projection used in share listings."""
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True
