"""Pydantic domain models for the trip expense ledger."""

from .constants import (
    CATEGORIES,
    SPLIT_POLICIES,
    EXPENSE_STATUSES,
    TOLERANCE,
)  # re-export
from .expense import (
    Expense,
    ExpenseCreate,
    ExpenseLocation,
    ExpenseUpdate,
    Participant,
    Receipt,
)
from .trip import Trip, TripMember, TripCreate, MemberAdd

__all__ = [
    "CATEGORIES",
    "SPLIT_POLICIES",
    "EXPENSE_STATUSES",
    "TOLERANCE",
    "Expense",
    "Participant",
    "ExpenseCreate",
    "ExpenseUpdate",
    "Receipt",
    "ExpenseLocation",
    "Trip",
    "TripMember",
    "TripCreate",
    "MemberAdd",
]
