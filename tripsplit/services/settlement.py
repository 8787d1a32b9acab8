"""Settlement planner: turn net balances into debtor -> creditor transfers.

Greedy largest-first matching, not a provably transaction-minimal solver:

1. Members whose balance lies in the [-0.01, 0.01] dead-zone are settled and
   skipped. The rest split into creditors (> 0.01) and debtors (< -0.01).
2. Creditors are sorted by balance descending, debtors ascending (most
   negative first). Both sorts are stable, so equal balances keep the input
   (roster) order and the plan is deterministic.
3. A two-cursor walk moves `min(creditor, |debtor|)` at each step, emitting a
   transfer when that amount exceeds 0.01, and advances whichever cursor has
   reached the dead-zone.

Downstream consumers pin exact pairings produced by this order, so it must
not be swapped for a different matching strategy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List

from tripsplit.models.constants import TOLERANCE
from tripsplit.services.balances import MemberBalance
from tripsplit.services.money import is_settled_amount, round2

logger = logging.getLogger("tripsplit.settlement")


@dataclass(frozen=True)
class SettlementTransfer:
    from_member_id: str
    to_member_id: str
    amount: float


@dataclass
class _Position:
    member_id: str
    remaining: float


def plan_settlements(balances: Iterable[MemberBalance]) -> List[SettlementTransfer]:
    positions = [_Position(b.member_id, b.balance) for b in balances]
    creditors = sorted(
        (p for p in positions if p.remaining > TOLERANCE),
        key=lambda p: p.remaining,
        reverse=True,
    )
    debtors = sorted(
        (p for p in positions if p.remaining < -TOLERANCE),
        key=lambda p: p.remaining,
    )
    # sorted(reverse=True) keeps equal keys in input order, so ties stay stable.

    transfers: List[SettlementTransfer] = []
    ci = di = 0
    while ci < len(creditors) and di < len(debtors):
        creditor = creditors[ci]
        debtor = debtors[di]
        amount = min(creditor.remaining, abs(debtor.remaining))
        if amount > TOLERANCE:
            transfers.append(
                SettlementTransfer(
                    from_member_id=debtor.member_id,
                    to_member_id=creditor.member_id,
                    amount=round2(amount),
                )
            )
            creditor.remaining -= amount
            debtor.remaining += amount
        if is_settled_amount(creditor.remaining):
            ci += 1
        if is_settled_amount(debtor.remaining):
            di += 1

    logger.debug(
        "planned %d transfers for %d creditors / %d debtors",
        len(transfers),
        len(creditors),
        len(debtors),
    )
    return transfers
