"""Expense ledger operations.

Pure functions over `Expense` values; persistence and authorization are the
caller's job. Every function either returns a new Expense (inputs are never
mutated) or raises a `ValidationError` before anything could be persisted.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pydantic

from tripsplit.core.errors import InvalidStatusTransition, ValidationError
from tripsplit.models.constants import STATUS_TRANSITIONS
from tripsplit.models.expense import Expense, ExpenseLocation, Participant, Receipt
from tripsplit.services.balances import MemberBalance, aggregate_balances
from tripsplit.services.expense_validation import (
    validate_amount,
    validate_category,
    validate_currency,
    validate_description,
    validate_expense_fields,
    validate_shares,
    validate_status,
    validate_tags,
)
from tripsplit.services.money import round2
from tripsplit.services.settlement import SettlementTransfer, plan_settlements
from tripsplit.services.split_calculator import calculate_participants

logger = logging.getLogger("tripsplit.ledger")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_expense_id() -> str:
    return uuid.uuid4().hex


def _attachment(field, model, value):
    if value is None or isinstance(value, model):
        return value
    try:
        return model.parse_obj(value)
    except pydantic.ValidationError as exc:
        raise ValidationError(str(exc), {"field": field})


# ---------------- Create -----------------
def validate_and_build_expense(
    group_id: str,
    payer_id: str,
    total_amount: float,
    currency: str,
    category: str,
    split_policy: str,
    participants_or_member_ids: Iterable[Any],
    *,
    description: str,
    tags: Optional[Iterable[str]] = None,
    receipt: Optional[Any] = None,
    location: Optional[Any] = None,
    expense_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Expense:
    """Validate inputs and return a new pending Expense.

    For the ``equal`` policy `participants_or_member_ids` is the list of
    member ids to split across; for ``custom`` / ``individual`` it is the
    caller's (member_id, share) pairs.
    """
    for name, value in (("group_id", group_id), ("payer_id", payer_id)):
        if not str(value or "").strip():
            raise ValidationError(f"{name} is required", {"field": name})
    fields = validate_expense_fields(description, currency, category, split_policy, tags)
    amount = validate_amount(total_amount)
    participants = calculate_participants(
        amount, fields["split_policy"], participants_or_member_ids
    )
    validate_shares(amount, participants)
    timestamp = now or _utcnow()
    return Expense(
        id=expense_id or _new_expense_id(),
        group_id=str(group_id),
        payer_id=str(payer_id),
        description=fields["description"],
        total_amount=amount,
        currency=fields["currency"],
        category=fields["category"],
        split_policy=fields["split_policy"],
        participants=participants,
        status="pending",
        tags=fields["tags"],
        receipt=_attachment("receipt", Receipt, receipt),
        location=_attachment("location", ExpenseLocation, location),
        created_at=timestamp,
        updated_at=timestamp,
    )


# ---------------- Accessors -----------------
def is_participant(expense: Expense, member_id: str) -> bool:
    return expense.is_participant(member_id)


def user_share(expense: Expense, member_id: str) -> float:
    """The member's share of `expense`, 0 when they are not a participant."""
    return expense.user_share(member_id)


# ---------------- Lifecycle -----------------
def settle_expense(expense: Expense, now: Optional[datetime] = None) -> Expense:
    """Mark the expense and every participant share as settled.

    Settling an already settled expense returns it unchanged; a disputed expense
    must be moved back to pending first.
    """
    if expense.status == "settled":
        return expense
    if "settled" not in STATUS_TRANSITIONS[expense.status]:
        raise InvalidStatusTransition(expense.status, "settled")
    participants = [p.copy(update={"settled": True}) for p in expense.participants]
    return expense.copy(
        update={
            "status": "settled",
            "participants": participants,
            "updated_at": now or _utcnow(),
        }
    )


def change_status(
    expense: Expense, status: str, now: Optional[datetime] = None
) -> Expense:
    status = validate_status(status)
    if status not in STATUS_TRANSITIONS[expense.status]:
        raise InvalidStatusTransition(expense.status, status)
    if status == "settled":
        return settle_expense(expense, now=now)
    if status == expense.status:
        return expense
    return expense.copy(update={"status": status, "updated_at": now or _utcnow()})


# ---------------- Update -----------------
def apply_expense_update(
    expense: Expense,
    changes: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Expense:
    """Return `expense` with a partial update applied.

    Accepted keys: description, amount, currency, category, participants
    (explicit shares), member_ids (equal re-split of the new amount), status,
    tags, receipt, location. The share invariant is re-checked whenever the
    amount or the participants change; an amount change alone is checked
    against the existing shares.
    """
    updates: Dict[str, Any] = {}
    if changes.get("description") is not None:
        updates["description"] = validate_description(changes["description"])
    if changes.get("currency") is not None:
        updates["currency"] = validate_currency(changes["currency"])
    if changes.get("category") is not None:
        updates["category"] = validate_category(changes["category"])
    if changes.get("tags") is not None:
        updates["tags"] = validate_tags(changes["tags"])
    if changes.get("receipt") is not None:
        updates["receipt"] = _attachment("receipt", Receipt, changes["receipt"])
    if changes.get("location") is not None:
        updates["location"] = _attachment("location", ExpenseLocation, changes["location"])

    amount = expense.total_amount
    if changes.get("amount") is not None:
        amount = validate_amount(changes["amount"])
        updates["total_amount"] = amount

    if changes.get("member_ids") is not None:
        participants = calculate_participants(amount, "equal", changes["member_ids"])
        updates["participants"] = participants
        updates["split_policy"] = "equal"
    elif changes.get("participants") is not None:
        policy = (
            expense.split_policy if expense.split_policy != "equal" else "custom"
        )
        participants = calculate_participants(amount, policy, changes["participants"])
        updates["participants"] = participants
        updates["split_policy"] = policy
    else:
        participants = expense.participants

    if "total_amount" in updates or "participants" in updates:
        if expense.status == "settled":
            raise ValidationError(
                "Amount and shares of a settled expense cannot be changed",
                {"field": "participants", "status": expense.status},
            )
        validate_shares(amount, participants)

    timestamp = now or _utcnow()
    updated = expense.copy(update=updates) if updates else expense
    if changes.get("status") is not None:
        updated = change_status(updated, changes["status"], now=timestamp)
    if updated is not expense:
        updated = updated.copy(update={"updated_at": timestamp})
    return updated


# ---------------- Summary -----------------
@dataclass(frozen=True)
class GroupSummary:
    group_id: str
    total_amount: float
    total_expenses: int
    currency: str
    member_balances: List[MemberBalance]
    category_breakdown: Dict[str, float]
    settlements: List[SettlementTransfer]

    def as_dict(self) -> Dict[str, Any]:
        """Presentation form: every money value rounded to 2 decimals."""
        return {
            "group_id": self.group_id,
            "total_amount": round2(self.total_amount),
            "total_expenses": self.total_expenses,
            "currency": self.currency,
            "member_balances": [
                {
                    "member_id": mb.member_id,
                    "total_paid": round2(mb.total_paid),
                    "total_owed": round2(mb.total_owed),
                    "balance": round2(mb.balance),
                }
                for mb in self.member_balances
            ],
            "category_breakdown": {
                k: round2(v) for k, v in self.category_breakdown.items()
            },
            "settlements": [
                {
                    "from_member_id": t.from_member_id,
                    "to_member_id": t.to_member_id,
                    "amount": t.amount,
                }
                for t in self.settlements
            ],
        }


def compute_group_summary(
    group_id: str,
    expenses: Iterable[Expense],
    roster: Sequence[str],
    default_currency: str = "USD",
) -> GroupSummary:
    """Aggregate balances for one group and plan its settlements.

    Expenses belonging to another group are ignored. The summary currency is
    the last-seen expense currency in iteration order; callers wanting "most
    recent" should pass expenses oldest first.
    """
    own = [e for e in expenses if e.group_id == group_id]
    sheet = aggregate_balances(own, roster, default_currency=default_currency)
    settlements = plan_settlements(sheet.member_balances)
    logger.debug(
        "summary for group %s: %d expenses, %d settlements",
        group_id,
        sheet.total_expenses,
        len(settlements),
    )
    return GroupSummary(
        group_id=group_id,
        total_amount=sheet.total_amount,
        total_expenses=sheet.total_expenses,
        currency=sheet.currency,
        member_balances=sheet.member_balances,
        category_breakdown=sheet.category_breakdown,
        settlements=settlements,
    )


__all__ = [
    "validate_and_build_expense",
    "compute_group_summary",
    "settle_expense",
    "change_status",
    "apply_expense_update",
    "is_participant",
    "user_share",
    "GroupSummary",
]
