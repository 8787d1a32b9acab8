"""Data Access Layer: the record store behind the ledger.

Responsibilities
----------------
- Trip CRUD and roster management (the default membership collaborator).
- Expense create / find-by-id / find-by-trip (optional category filter and
  pagination) / update / delete, converting rows to `Expense` models.

The store applies last-writer-wins to concurrent updates of one expense; it
does no optimistic locking.
"""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
import sqlite3
import uuid
from typing import Any, Dict, List, Optional

from tripsplit.models.expense import Expense, ExpenseLocation, Participant, Receipt
from tripsplit.models.trip import Trip, TripMember

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"


def _parse_ts(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    text = str(raw)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _row_to_expense(row: sqlite3.Row) -> Expense:
    data = dict(row)
    try:
        raw_tags = json.loads(data.get("tags") or "[]")
    except (json.JSONDecodeError, TypeError):
        raw_tags = []
    return Expense(
        id=data["id"],
        group_id=data["trip_id"],
        payer_id=data["payer_id"],
        description=data["description"],
        total_amount=float(data["amount"]),
        currency=data["currency"],
        category=data["category"],
        split_policy=data["split_type"],
        participants=[Participant(**p) for p in json.loads(data["participants"])],
        status=data["status"],
        tags=raw_tags,
        receipt=Receipt.parse_raw(data["receipt"]) if data.get("receipt") else None,
        location=(
            ExpenseLocation.parse_raw(data["location"]) if data.get("location") else None
        ),
        created_at=_parse_ts(data["created_at"]),
        updated_at=_parse_ts(data["updated_at"]),
    )


def _participants_json(expense: Expense) -> str:
    return json.dumps([p.dict() for p in expense.participants])


def _attachment_json(value) -> Optional[str]:
    return value.json() if value is not None else None


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    # ------------------------------------------------------------------
    # Trips & roster
    def _members(self, cur: sqlite3.Cursor, trip_id: str) -> List[TripMember]:
        cur.execute(
            "SELECT member_id, role, joined_at FROM trip_members WHERE trip_id = ? ORDER BY id",
            (trip_id,),
        )
        return [
            TripMember(
                member_id=r["member_id"],
                role=r["role"],
                joined_at=_parse_ts(r["joined_at"]),
            )
            for r in cur.fetchall()
        ]

    def _row_to_trip(self, cur: sqlite3.Cursor, row: sqlite3.Row) -> Trip:
        return Trip(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            destination=row["destination"],
            created_by=row["created_by"],
            members=self._members(cur, row["id"]),
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
        )

    def create_trip(
        self,
        name: str,
        created_by: str,
        description: str = "",
        destination: Optional[str] = None,
    ) -> str:
        trip_id = uuid.uuid4().hex
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO trips (id, name, description, destination, created_by) VALUES (?, ?, ?, ?, ?)",
                (trip_id, name, description or "", destination, created_by),
            )
            cur.execute(
                "INSERT INTO trip_members (trip_id, member_id, role) VALUES (?, ?, 'admin')",
                (trip_id, created_by),
            )
            conn.commit()
        return trip_id

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM trips WHERE id = ?", (trip_id,))
            row = cur.fetchone()
            return self._row_to_trip(cur, row) if row else None

    def list_trips_for_member(self, member_id: str) -> List[Trip]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT t.* FROM trips t
                JOIN trip_members m ON m.trip_id = t.id
                WHERE m.member_id = ?
                ORDER BY t.created_at DESC, t.rowid DESC
                """,
                (member_id,),
            )
            rows = cur.fetchall()
            return [self._row_to_trip(cur, r) for r in rows]

    def add_member(self, trip_id: str, member_id: str, role: str = "member") -> bool:
        """Add `member_id` to the roster. Returns False if already a member."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT OR IGNORE INTO trip_members (trip_id, member_id, role) VALUES (?, ?, ?)",
                (trip_id, member_id, role),
            )
            added = cur.rowcount > 0
            if added:
                cur.execute(
                    f"UPDATE trips SET updated_at = ({UTC_NOW_SQL}) WHERE id = ?",
                    (trip_id,),
                )
            conn.commit()
            return added

    def remove_member(self, trip_id: str, member_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "DELETE FROM trip_members WHERE trip_id = ? AND member_id = ?",
                (trip_id, member_id),
            )
            removed = cur.rowcount > 0
            if removed:
                cur.execute(
                    f"UPDATE trips SET updated_at = ({UTC_NOW_SQL}) WHERE id = ?",
                    (trip_id,),
                )
            conn.commit()
            return removed

    def get_roster(self, trip_id: str) -> List[str]:
        with self._connect() as conn:
            return [m.member_id for m in self._members(conn.cursor(), trip_id)]

    # ------------------------------------------------------------------
    # Expenses
    def create_expense(self, expense: Expense) -> str:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO expenses (
                    id, trip_id, payer_id, description, amount, currency, category,
                    split_type, participants, status, tags, receipt, location,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    expense.id,
                    expense.group_id,
                    expense.payer_id,
                    expense.description,
                    expense.total_amount,
                    expense.currency,
                    expense.category,
                    expense.split_policy,
                    _participants_json(expense),
                    expense.status,
                    json.dumps(expense.tags),
                    _attachment_json(expense.receipt),
                    _attachment_json(expense.location),
                    expense.created_at.isoformat(),
                    expense.updated_at.isoformat(),
                ),
            )
            conn.commit()
        return expense.id

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,))
            row = cur.fetchone()
            return _row_to_expense(row) if row else None

    def find_expenses_by_trip(
        self,
        trip_id: str,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> List[Expense]:
        clauses = ["trip_id = ?"]
        params: List[Any] = [trip_id]
        if category:
            clauses.append("category = ?")
            params.append(category)
        direction = "DESC" if newest_first else "ASC"
        sql = (
            "SELECT * FROM expenses WHERE "
            + " AND ".join(clauses)
            + f" ORDER BY created_at {direction}, rowid {direction}"
        )
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [_row_to_expense(r) for r in cur.fetchall()]

    def count_expenses(self, trip_id: str, category: Optional[str] = None) -> int:
        sql = "SELECT COUNT(*) FROM expenses WHERE trip_id = ?"
        params: List[Any] = [trip_id]
        if category:
            sql += " AND category = ?"
            params.append(category)
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            row = cur.fetchone()
            return int(row[0] if row and row[0] is not None else 0)

    def update_expense(self, expense: Expense) -> None:
        """Overwrite the stored expense. Raises ValueError if it no longer exists."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE expenses SET
                    description = ?, amount = ?, currency = ?, category = ?,
                    split_type = ?, participants = ?, status = ?, tags = ?,
                    receipt = ?, location = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    expense.description,
                    expense.total_amount,
                    expense.currency,
                    expense.category,
                    expense.split_policy,
                    _participants_json(expense),
                    expense.status,
                    json.dumps(expense.tags),
                    _attachment_json(expense.receipt),
                    _attachment_json(expense.location),
                    expense.updated_at.isoformat(),
                    expense.id,
                ),
            )
            if cur.rowcount == 0:
                raise ValueError("expense not found")
            conn.commit()

    def delete_expense(self, expense_id: str) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
            if cur.rowcount == 0:
                raise ValueError("expense not found")
            conn.commit()

    def stats(self) -> Dict[str, int]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT (SELECT COUNT(*) FROM trips), (SELECT COUNT(*) FROM expenses)")
            trips, expenses = cur.fetchone()
            return {"trips": int(trips), "expenses": int(expenses)}
