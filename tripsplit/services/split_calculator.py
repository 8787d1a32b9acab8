"""Split calculator: derive an expense's participant shares from its policy.

Pure functions, no I/O. The result is not validated here; callers pass it to
`validate_shares` before building an Expense.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Sequence, Tuple

from tripsplit.core.errors import InvalidSplitPolicy, ValidationError
from tripsplit.models.constants import SPLIT_POLICIES
from tripsplit.models.expense import Participant

logger = logging.getLogger("tripsplit.split")


def _clean_member_id(member_id: Any) -> str:
    if member_id is None or not str(member_id).strip():
        raise ValidationError(
            "Participant member_id cannot be empty", {"field": "participants"}
        )
    return str(member_id).strip()


def _member_of(item: Any) -> str:
    if isinstance(item, str):
        return _clean_member_id(item)
    if isinstance(item, dict):
        return _clean_member_id(item.get("member_id"))
    return _clean_member_id(getattr(item, "member_id", None))


def _as_pair(item: Any) -> Tuple[str, float]:
    if isinstance(item, dict):
        member_id, share = item.get("member_id"), item.get("share")
    elif hasattr(item, "member_id"):
        member_id, share = item.member_id, item.share
    else:
        member_id, share = item
    try:
        share = float(share)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Share for {member_id!r} is not a number",
            {"field": "participants", "member_id": member_id, "value": share},
        )
    return _clean_member_id(member_id), share


def equal_split(total_amount: float, member_ids: Sequence[str]) -> List[Participant]:
    """Give every member `total_amount / len(member_ids)`.

    The float residue of an uneven division is left in place rather than
    pushed onto one member; it always stays well inside the tolerance.
    """
    if not member_ids:
        return []
    per_member = total_amount / len(member_ids)
    return [Participant(member_id=m, share=per_member) for m in member_ids]


def passthrough_split(shares: Iterable[Any]) -> List[Participant]:
    """Caller-supplied shares (custom / individual), copied with settled=False."""
    return [
        Participant(member_id=member_id, share=share)
        for member_id, share in (_as_pair(item) for item in shares)
    ]


def calculate_participants(
    total_amount: float, split_policy: str, participants_or_member_ids: Iterable[Any]
) -> List[Participant]:
    """Build the participants list for `split_policy`.

    equal: `participants_or_member_ids` holds member ids (plain strings, or
    objects / dicts carrying `member_id`; any share they carry is ignored).
    custom / individual: (member_id, share) pairs, dicts, or Participant-like
    objects, passed through unchanged.
    """
    if split_policy not in SPLIT_POLICIES:
        raise InvalidSplitPolicy(split_policy, SPLIT_POLICIES)
    items = list(participants_or_member_ids or [])
    if split_policy == "equal":
        participants = equal_split(total_amount, [_member_of(i) for i in items])
    else:
        participants = passthrough_split(items)
    logger.debug(
        "split %s of %s across %d participants",
        split_policy,
        total_amount,
        len(participants),
    )
    return participants
