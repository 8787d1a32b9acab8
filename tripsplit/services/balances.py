"""Balance aggregator.

Folds a snapshot of a group's expenses into per-member paid / owed totals,
category totals and an overall total. Rebuilt from scratch on every call;
nothing is cached between calls.

Design notes:
    The payer is credited the full expense total, and every participant
    (the payer included, when they took a share) is debited their share.
    The payer's own share therefore appears on both sides and nets out in
    `balance` without any special casing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from tripsplit.models.expense import Expense

logger = logging.getLogger("tripsplit.balances")


@dataclass
class MemberBalance:
    member_id: str
    total_paid: float = 0.0
    total_owed: float = 0.0

    @property
    def balance(self) -> float:
        return self.total_paid - self.total_owed


@dataclass(frozen=True)
class BalanceSheet:
    total_amount: float
    total_expenses: int
    currency: str
    member_balances: List[MemberBalance]
    category_breakdown: Dict[str, float] = field(default_factory=dict)

    def balance_of(self, member_id: str) -> float:
        for mb in self.member_balances:
            if mb.member_id == member_id:
                return mb.balance
        return 0.0


def aggregate_balances(
    expenses: Iterable[Expense],
    roster: Sequence[str],
    default_currency: str = "USD",
) -> BalanceSheet:
    """Return the group's balance sheet.

    Members are listed in roster order; identifiers that only appear in the
    expenses (e.g. a member who has since left) are appended in first-seen
    order. `currency` is the last-seen expense currency, or
    `default_currency` when there are no expenses.
    """
    balances: Dict[str, MemberBalance] = {}
    for member_id in roster:
        balances.setdefault(member_id, MemberBalance(member_id=member_id))

    def _entry(member_id: str) -> MemberBalance:
        if member_id not in balances:
            logger.debug("member %s not on roster; tracking from expenses", member_id)
            balances[member_id] = MemberBalance(member_id=member_id)
        return balances[member_id]

    total_amount = 0.0
    total_expenses = 0
    currency = default_currency
    category_breakdown: Dict[str, float] = {}

    for expense in expenses:
        total_expenses += 1
        total_amount += expense.total_amount
        currency = expense.currency
        category_breakdown[expense.category] = (
            category_breakdown.get(expense.category, 0.0) + expense.total_amount
        )
        _entry(expense.payer_id).total_paid += expense.total_amount
        for participant in expense.participants:
            _entry(participant.member_id).total_owed += participant.share

    logger.debug(
        "aggregated %d expenses across %d members", total_expenses, len(balances)
    )
    return BalanceSheet(
        total_amount=total_amount,
        total_expenses=total_expenses,
        currency=currency,
        member_balances=list(balances.values()),
        category_breakdown=category_breakdown,
    )
