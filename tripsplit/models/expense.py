from __future__ import annotations
from pydantic import BaseModel, validator, root_validator, Field
from typing import Dict, List, Literal, Optional
from datetime import datetime
from .constants import DEFAULT_CATEGORY, DEFAULT_SPLIT_POLICY


def _strip_member_id(cls, v: str) -> str:
    if v is None or not str(v).strip():
        raise ValueError("member_id cannot be empty")
    return str(v).strip()


class Participant(BaseModel):
    """One member's share of an expense. Owned by its Expense."""

    member_id: str
    share: float
    settled: bool = False

    _member = validator("member_id", allow_reuse=True)(_strip_member_id)

    class Config:
        allow_mutation = False


class Receipt(BaseModel):
    """Pointer to an uploaded receipt image. Stored as given."""

    url: str
    public_id: Optional[str] = None

    @validator("url")
    def _url_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("receipt url cannot be empty")
        return v.strip()

    class Config:
        allow_mutation = False


class ExpenseLocation(BaseModel):
    """Where the expense happened: an optional place name plus a GeoJSON point.

    `coordinates` is `[longitude, latitude]`, GeoJSON order.
    """

    name: Optional[str] = None
    type: Literal["Point"] = "Point"
    coordinates: List[float]

    @validator("coordinates")
    def _lng_lat(cls, v: List[float]) -> List[float]:
        if len(v) != 2:
            raise ValueError("coordinates must be [longitude, latitude]")
        lng, lat = v
        if not -180 <= lng <= 180 or not -90 <= lat <= 90:
            raise ValueError("coordinates out of range")
        return v

    class Config:
        allow_mutation = False


class Expense(BaseModel):
    """Stored expense aggregate.

    Instances are immutable; lifecycle helpers in `tripsplit.services.ledger`
    return updated copies. Shares are validated by the ledger validator
    before an Expense is ever constructed, not here.
    """

    id: str
    group_id: str
    payer_id: str
    description: str
    total_amount: float
    currency: str
    category: str
    split_policy: str
    participants: List[Participant]
    status: str = "pending"
    tags: List[str] = Field(default_factory=list)
    receipt: Optional[Receipt] = None
    location: Optional[ExpenseLocation] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        allow_mutation = False
        orm_mode = True

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def average_share(self) -> float:
        if not self.participants:
            return 0.0
        return self.total_amount / len(self.participants)

    def find_participant(self, member_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.member_id == str(member_id):
                return participant
        return None

    def is_participant(self, member_id: str) -> bool:
        return self.find_participant(member_id) is not None

    def user_share(self, member_id: str) -> float:
        participant = self.find_participant(member_id)
        return participant.share if participant else 0.0


# Request payloads -------------------------------------------------
class ParticipantIn(BaseModel):
    member_id: str
    share: float

    _member = validator("member_id", allow_reuse=True)(_strip_member_id)


class ExpenseCreate(BaseModel):
    """Create payload.

    Only shape and normalization live here; amount, category, split policy and
    share rules are enforced by the ledger so rejections carry specific codes.
    `participants` is required for custom/individual splits; for an equal
    split `member_ids` is optional and defaults to the trip roster.
    """

    trip_id: str
    description: str
    amount: float
    currency: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    split_type: str = DEFAULT_SPLIT_POLICY
    participants: Optional[List[ParticipantIn]] = None
    member_ids: Optional[List[str]] = None
    tags: List[str] = Field(default_factory=list)
    receipt: Optional[Receipt] = None
    location: Optional[ExpenseLocation] = None

    @validator("description")
    def _strip_description(cls, v: str) -> str:
        return v.strip()

    @validator("currency")
    def _upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v is not None else None

    @validator("category", "split_type")
    def _lower(cls, v: str) -> str:
        return v.strip().lower()


class ExpenseUpdate(BaseModel):
    """Partial update model. Trip and payer are immutable.

    All fields optional; at least one must be provided. `member_ids` re-splits
    the (possibly new) amount equally; `participants` replaces shares as given.
    """

    description: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    participants: Optional[List[ParticipantIn]] = None
    member_ids: Optional[List[str]] = None
    status: Optional[str] = None
    tags: Optional[List[str]] = None
    receipt: Optional[Receipt] = None
    location: Optional[ExpenseLocation] = None

    @root_validator
    def _at_least_one(cls, values: dict) -> dict:
        if not any(
            values.get(f) is not None
            for f in (
                "description",
                "amount",
                "currency",
                "category",
                "participants",
                "member_ids",
                "status",
                "tags",
                "receipt",
                "location",
            )
        ):
            raise ValueError("at least one field must be provided for update")
        return values

    @root_validator
    def _one_share_source(cls, values: dict) -> dict:
        if values.get("participants") is not None and values.get("member_ids") is not None:
            raise ValueError("provide either participants or member_ids, not both")
        return values

    def changes(self) -> Dict[str, object]:
        return self.dict(exclude_none=True)


# Responses --------------------------------------------------------
class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class ExpensePage(BaseModel):
    expenses: List[Expense]
    pagination: Pagination


class ExpenseShare(BaseModel):
    expense_id: str
    member_id: str
    is_participant: bool
    share: float


class MemberBalanceOut(BaseModel):
    member_id: str
    total_paid: float
    total_owed: float
    balance: float


class SettlementOut(BaseModel):
    from_member_id: str
    to_member_id: str
    amount: float


class GroupSummaryOut(BaseModel):
    group_id: str
    total_amount: float
    total_expenses: int
    currency: str
    member_balances: List[MemberBalanceOut]
    category_breakdown: Dict[str, float]
    settlements: List[SettlementOut]
