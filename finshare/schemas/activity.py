from datetime import datetime

from pydantic import BaseModel


class ActivityOut(BaseModel):
    id: int
    user_id: int
    activity_type: str
    description: str
    created_at: datetime

    class Config:
        from_attributes = True
