from pydantic import BaseModel
from typing import Optional


class ProfileEntity(BaseModel):
    user_id: str
    name: Optional[str] = None
    plan: Optional[str] = None
