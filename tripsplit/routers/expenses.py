import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from tripsplit.core.config import Settings
from tripsplit.core.dependencies import get_app_settings, get_current_member, get_db
from tripsplit.core.errors import NotFoundError
from tripsplit.db.dal import Database
from tripsplit.models.expense import (
    Expense,
    ExpenseCreate,
    ExpensePage,
    ExpenseShare,
    ExpenseUpdate,
    GroupSummaryOut,
    Pagination,
)
from tripsplit.services import ledger
from tripsplit.services.expense_validation import validate_category
from tripsplit.services.membership import (
    require_editor,
    require_expense,
    require_member,
    require_trip,
)

router = APIRouter(prefix="/expenses", tags=["expenses"])
logger = logging.getLogger("tripsplit.expenses")


# Routes -----------------------------------------------------------
@router.post("/", response_model=Expense, status_code=201, summary="Create an expense")
async def create_expense(
    payload: ExpenseCreate,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    # 1. Membership gate
    trip = require_trip(db, payload.trip_id)
    require_member(trip, member_id, "add expenses to this trip")

    # 2. Resolve share source: explicit shares, explicit members, or the roster
    if payload.split_type == "equal":
        source = payload.member_ids
        if source is None and payload.participants is not None:
            source = [p.member_id for p in payload.participants]
        if source is None:
            source = trip.roster
    else:
        source = payload.participants or []

    # 3. Validate & build (no side effects on failure)
    expense = ledger.validate_and_build_expense(
        group_id=trip.id,
        payer_id=member_id,
        total_amount=payload.amount,
        currency=payload.currency or settings.default_currency,
        category=payload.category,
        split_policy=payload.split_type,
        participants_or_member_ids=source,
        description=payload.description,
        tags=payload.tags,
        receipt=payload.receipt,
        location=payload.location,
    )

    # 4. Persist
    db.create_expense(expense)
    logger.info("expense %s created in trip %s", expense.id, trip.id)
    return expense


@router.get(
    "/trip/{trip_id}",
    response_model=ExpensePage,
    summary="List a trip's expenses (newest first, paginated)",
)
async def list_trip_expenses(
    trip_id: str,
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: Optional[int] = Query(None, ge=1, description="Page size"),
    category: Optional[str] = Query(None, description="Filter by category"),
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    trip = require_trip(db, trip_id)
    require_member(trip, member_id, "view expenses for this trip")
    if category:
        category = validate_category(category.lower())
    size = min(limit or settings.default_page_size, settings.max_page_size)
    expenses = db.find_expenses_by_trip(
        trip_id, category=category, limit=size, offset=(page - 1) * size
    )
    total = db.count_expenses(trip_id, category=category)
    return ExpensePage(
        expenses=expenses,
        pagination=Pagination(current=page, pages=math.ceil(total / size), total=total),
    )


@router.get(
    "/trip/{trip_id}/summary",
    response_model=GroupSummaryOut,
    summary="Balances, category totals and suggested settlements for a trip",
)
async def trip_summary(
    trip_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    trip = require_trip(db, trip_id)
    require_member(trip, member_id, "view expense summary for this trip")
    # Oldest first so the reported currency is the most recent one.
    expenses = db.find_expenses_by_trip(trip_id, newest_first=False)
    summary = ledger.compute_group_summary(
        trip.id, expenses, trip.roster, default_currency=settings.default_currency
    )
    return summary.as_dict()


@router.get("/{expense_id}", response_model=Expense, summary="Get one expense")
async def get_expense(
    expense_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    expense = require_expense(db, expense_id)
    trip = require_trip(db, expense.group_id)
    require_member(trip, member_id, "view this expense")
    return expense


@router.get(
    "/{expense_id}/share",
    response_model=ExpenseShare,
    summary="The caller's share of an expense",
)
async def get_my_share(
    expense_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    expense = require_expense(db, expense_id)
    trip = require_trip(db, expense.group_id)
    require_member(trip, member_id, "view this expense")
    return ExpenseShare(
        expense_id=expense.id,
        member_id=member_id,
        is_participant=ledger.is_participant(expense, member_id),
        share=ledger.user_share(expense, member_id),
    )


@router.patch(
    "/{expense_id}", response_model=Expense, summary="Edit an expense (partial)"
)
async def patch_expense(
    expense_id: str,
    payload: ExpenseUpdate,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    # 1. Fetch & authorize (payer or trip admin)
    expense = require_expense(db, expense_id)
    trip = require_trip(db, expense.group_id)
    require_editor(trip, expense, member_id, "update this expense")

    # 2. Merge + revalidate
    updated = ledger.apply_expense_update(expense, payload.changes())

    # 3. Persist
    try:
        db.update_expense(updated)
    except ValueError:
        raise NotFoundError("expense", expense_id)
    logger.info("expense %s updated", expense_id)
    return updated


@router.put(
    "/{expense_id}/settle", response_model=Expense, summary="Mark an expense as settled"
)
async def settle_expense(
    expense_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    expense = require_expense(db, expense_id)
    trip = require_trip(db, expense.group_id)
    require_member(trip, member_id, "settle this expense")
    settled = ledger.settle_expense(expense)
    if settled is expense:
        return expense
    db.update_expense(settled)
    logger.info("expense %s settled", expense_id)
    return settled


@router.delete("/{expense_id}", status_code=204, summary="Delete an expense")
async def delete_expense(
    expense_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    expense = require_expense(db, expense_id)
    trip = require_trip(db, expense.group_id)
    require_editor(trip, expense, member_id, "delete this expense")
    try:
        db.delete_expense(expense_id)
    except ValueError:
        raise NotFoundError("expense", expense_id)
    logger.info("expense %s deleted", expense_id)
    return Response(status_code=204)
