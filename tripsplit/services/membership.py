"""Trip membership gate.

Resolves trips and answers the yes/no access questions the routers must
settle before calling into the ledger. Failures raise `NotFoundError` /
`AuthorizationError`; the ledger never catches them.
"""

from __future__ import annotations

import logging

from tripsplit.core.errors import AuthorizationError, NotFoundError
from tripsplit.db.dal import Database
from tripsplit.models.expense import Expense
from tripsplit.models.trip import Trip

logger = logging.getLogger("tripsplit.membership")


def require_trip(db: Database, trip_id: str) -> Trip:
    trip = db.get_trip(trip_id)
    if trip is None:
        raise NotFoundError("trip", trip_id)
    return trip


def require_expense(db: Database, expense_id: str) -> Expense:
    expense = db.find_expense(expense_id)
    if expense is None:
        raise NotFoundError("expense", expense_id)
    return expense


def require_member(trip: Trip, member_id: str, action: str = "access this trip") -> None:
    if not trip.is_member(member_id):
        logger.info("member %s denied: %s on trip %s", member_id, action, trip.id)
        raise AuthorizationError(
            f"Not authorized to {action}",
            {"trip_id": trip.id, "member_id": member_id},
        )


def require_admin(trip: Trip, member_id: str, action: str = "manage this trip") -> None:
    if not trip.is_admin(member_id):
        logger.info("member %s denied admin: %s on trip %s", member_id, action, trip.id)
        raise AuthorizationError(
            f"Only trip admins may {action}",
            {"trip_id": trip.id, "member_id": member_id},
        )


def require_editor(
    trip: Trip, expense: Expense, member_id: str, action: str = "modify this expense"
) -> None:
    """The expense's payer or a trip admin may update / delete it."""
    if expense.payer_id == str(member_id) and trip.is_member(member_id):
        return
    if trip.is_admin(member_id):
        return
    logger.info("member %s denied: %s %s", member_id, action, expense.id)
    raise AuthorizationError(
        f"Not authorized to {action}",
        {"trip_id": trip.id, "expense_id": expense.id, "member_id": member_id},
    )


__all__ = [
    "require_trip",
    "require_expense",
    "require_member",
    "require_admin",
    "require_editor",
]
