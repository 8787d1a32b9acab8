"""Ledger validator: the checks every expense must pass before it is stored.

Two layers:

- `validate_shares(total_amount, participants)` enforces the conservation
  invariant: a positive total, a non-empty participant list with unique
  members and non-negative shares, and shares summing to the total within
  `TOLERANCE`. It runs on create and on every update touching the amount or
  the participants.
- `validate_expense_fields(...)` covers the enumerated / free-text fields
  (description, currency, category, split policy, status, tags).

Both raise a `ValidationError` subclass naming the violated rule and never
mutate their inputs.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence

from tripsplit.core.errors import (
    DuplicateParticipant,
    EmptyParticipants,
    InvalidAmount,
    InvalidCategory,
    InvalidSplitPolicy,
    ShareMismatch,
    ValidationError,
)
from tripsplit.models.constants import (
    CATEGORIES,
    DESCRIPTION_MAX_LENGTH,
    EXPENSE_STATUSES,
    MIN_AMOUNT,
    SPLIT_POLICIES,
    TAG_MAX_LENGTH,
    TOLERANCE,
)
from tripsplit.models.expense import Participant

logger = logging.getLogger("tripsplit.validation")


def validate_amount(total_amount: float) -> float:
    try:
        value = float(total_amount)
    except (TypeError, ValueError):
        raise InvalidAmount("total_amount", total_amount, "must be a number")
    if not math.isfinite(value) or value <= 0:
        raise InvalidAmount("total_amount", total_amount)
    if value < MIN_AMOUNT:
        raise InvalidAmount("total_amount", total_amount, f"must be at least {MIN_AMOUNT}")
    return value


def validate_shares(total_amount: float, participants: Sequence[Participant]) -> None:
    total = validate_amount(total_amount)
    if not participants:
        raise EmptyParticipants()
    seen = set()
    for p in participants:
        if p.member_id in seen:
            raise DuplicateParticipant(p.member_id)
        seen.add(p.member_id)
        if not math.isfinite(p.share) or p.share < 0:
            raise InvalidAmount(
                f"participants[{p.member_id}].share", p.share, "must be a non-negative number"
            )
    shares_total = sum(p.share for p in participants)
    if abs(shares_total - total) > TOLERANCE:
        logger.info(
            "share mismatch: total=%s shares=%s", total, shares_total
        )
        raise ShareMismatch(total, shares_total)


def validate_description(description: Optional[str]) -> str:
    text = (description or "").strip()
    if not text or len(text) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"description is required and must be at most {DESCRIPTION_MAX_LENGTH} characters",
            {"field": "description", "length": len(text)},
        )
    return text


def validate_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(
            "currency must be a 3-letter code", {"field": "currency", "value": currency}
        )
    return code


def validate_category(category: str) -> str:
    if category not in CATEGORIES:
        raise InvalidCategory(category, CATEGORIES)
    return category


def validate_split_policy(split_policy: str) -> str:
    if split_policy not in SPLIT_POLICIES:
        raise InvalidSplitPolicy(split_policy, SPLIT_POLICIES)
    return split_policy


def validate_status(status: str) -> str:
    if status not in EXPENSE_STATUSES:
        raise ValidationError(
            f"Unsupported status {status!r}",
            {"field": "status", "value": status, "allowed": sorted(EXPENSE_STATUSES)},
        )
    return status


def validate_tags(tags: Optional[Iterable[str]]) -> List[str]:
    cleaned: List[str] = []
    for tag in tags or []:
        text = str(tag).strip()
        if not text or len(text) > TAG_MAX_LENGTH:
            raise ValidationError(
                f"tags must be 1-{TAG_MAX_LENGTH} characters",
                {"field": "tags", "value": tag},
            )
        cleaned.append(text)
    return cleaned


def validate_expense_fields(
    description: Optional[str],
    currency: str,
    category: str,
    split_policy: str,
    tags: Optional[Iterable[str]] = None,
) -> dict:
    """Validate and normalize the non-monetary fields; returns the clean values."""
    return {
        "description": validate_description(description),
        "currency": validate_currency(currency),
        "category": validate_category(category),
        "split_policy": validate_split_policy(split_policy),
        "tags": validate_tags(tags),
    }
