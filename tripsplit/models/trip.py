from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, validator


class TripMember(BaseModel):
    member_id: str
    role: Literal["admin", "member"] = "member"
    joined_at: datetime


class Trip(BaseModel):
    """Trip with its roster, as supplied by the membership gate.

    `members` is kept in join order; that order is the roster order the
    balance aggregator uses for zero-initialization and tie-breaks.
    """

    id: str
    name: str
    description: str = ""
    destination: Optional[str] = None
    created_by: str
    members: List[TripMember]
    created_at: datetime
    updated_at: datetime

    class Config:
        orm_mode = True

    @property
    def roster(self) -> List[str]:
        return [m.member_id for m in self.members]

    def is_member(self, member_id: str) -> bool:
        return any(m.member_id == str(member_id) for m in self.members)

    def is_admin(self, member_id: str) -> bool:
        return any(
            m.member_id == str(member_id) and m.role == "admin" for m in self.members
        )


class TripCreate(BaseModel):
    name: str
    description: str = ""
    destination: Optional[str] = None

    @validator("name")
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("name cannot be empty")
        value = value.strip()
        if len(value) > 100:
            raise ValueError("name cannot be more than 100 characters")
        return value

    @validator("description")
    def _description_length(cls, value: str) -> str:
        if len(value) > 500:
            raise ValueError("description cannot be more than 500 characters")
        return value

    @validator("destination")
    def _destination_strip(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) > 100:
            raise ValueError("destination cannot be more than 100 characters")
        return value or None


class MemberAdd(BaseModel):
    member_id: str
    role: Literal["admin", "member"] = "member"

    @validator("member_id")
    def _member_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("member_id cannot be empty")
        return value.strip()
