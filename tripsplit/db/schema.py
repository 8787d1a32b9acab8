"""Database schema DDL definitions and initialization utilities.

Tables:
  - trips: trip records (the expense groups)
  - trip_members: roster per trip with role; row id preserves join order
  - expenses: expense records; participant shares stored inline as a JSON
    array so the share collection stays owned by its expense
  - metadata: key/value store (schema version)
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

TRIPS_DDL = f"""
CREATE TABLE IF NOT EXISTS trips (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    destination TEXT,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

TRIP_MEMBERS_DDL = f"""
CREATE TABLE IF NOT EXISTS trip_members (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    trip_id TEXT NOT NULL,
    member_id TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'member' CHECK (role IN ('admin','member')),
    joined_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    UNIQUE(trip_id, member_id),
    FOREIGN KEY (trip_id) REFERENCES trips(id) ON DELETE CASCADE
);
"""

EXPENSES_DDL = """
CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    trip_id TEXT NOT NULL,
    payer_id TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    category TEXT NOT NULL,
    split_type TEXT NOT NULL, -- 'equal' | 'custom' | 'individual'
    participants TEXT NOT NULL, -- JSON [{member_id, share, settled}]
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending','settled','disputed')),
    tags TEXT NOT NULL DEFAULT '[]', -- JSON list of strings
    receipt TEXT, -- JSON {url, public_id} or NULL
    location TEXT, -- JSON {name, type, coordinates} or NULL
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (trip_id) REFERENCES trips(id) ON DELETE CASCADE
);
"""

METADATA_DDL = f"""
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

MEMBERS_MEMBER_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_trip_members_member ON trip_members(member_id);"
)
EXPENSES_TRIP_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_trip_created ON expenses(trip_id, created_at);"
)
EXPENSES_CATEGORY_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expenses_trip_category ON expenses(trip_id, category);"
)

DDL_ORDER: Sequence[str] = (
    TRIPS_DDL,
    TRIP_MEMBERS_DDL,
    EXPENSES_DDL,
    METADATA_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        _ensure_indexes(cur)
        conn.commit()
    finally:
        conn.close()


def _ensure_indexes(cur: sqlite3.Cursor) -> None:
    """Create indexes, tolerating legacy schemas missing indexed columns."""
    for ddl in (
        MEMBERS_MEMBER_INDEX_DDL,
        EXPENSES_TRIP_INDEX_DDL,
        EXPENSES_CATEGORY_INDEX_DDL,
    ):
        try:
            cur.execute(ddl)
        except sqlite3.OperationalError:
            # Legacy tables may lack columns; migration handles the upgrade.
            continue
