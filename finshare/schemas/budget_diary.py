from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from finshare.models.budget_diary import AccessLevel


class DiaryCreate(BaseModel):
    name: str
    description: str | None = None
    is_default: bool = False


class DiaryRename(BaseModel):
    name: str
    description: str | None = None


class MemberAdd(BaseModel):
    email: str
    access_level: AccessLevel = AccessLevel.VIEWER


class DiaryMemberOut(BaseModel):
    id: int
    budget_id: int
    user_id: int
    access_level: AccessLevel
    created_at: datetime
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    class Config:
        from_attributes = True


class DiaryOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    owner_id: int
    is_default: bool
    created_at: datetime
    updated_at: datetime
    access_level: Optional[AccessLevel] = None
    members: List[DiaryMemberOut] = []


class DiaryAccessOut(BaseModel):
    budget_id: int
    user_id: int
    access_level: Optional[AccessLevel] = None
