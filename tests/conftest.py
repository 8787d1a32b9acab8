from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from tripsplit.core.config import Settings
from tripsplit.db.dal import Database
from tripsplit.db.migrate import apply_migrations
from tripsplit.main import create_app
from tripsplit.services import ledger

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=tmp_path / "test.sqlite3", default_page_size=2)


@pytest.fixture
def client(settings):
    app = create_app(settings_override=settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(settings):
    apply_migrations(settings.db_path)
    return Database(settings.db_path)


def as_member(member_id):
    return {"X-Member-Id": member_id}


@pytest.fixture
def trip(client):
    """Trip created by alice with bob and carol on the roster (in that order)."""
    resp = client.post("/trips/", json={"name": "Lisbon"}, headers=as_member("alice"))
    assert resp.status_code == 201, resp.text
    trip_id = resp.json()["id"]
    for member in ("bob", "carol"):
        r = client.post(
            f"/trips/{trip_id}/members",
            json={"member_id": member},
            headers=as_member("alice"),
        )
        assert r.status_code == 201, r.text
    return trip_id


def make_expense(payer, amount, members, group="g1", policy="equal", **kwargs):
    kwargs.setdefault("description", "test expense")
    return ledger.validate_and_build_expense(
        group_id=group,
        payer_id=payer,
        total_amount=amount,
        currency=kwargs.pop("currency", "USD"),
        category=kwargs.pop("category", "food"),
        split_policy=policy,
        participants_or_member_ids=members,
        now=kwargs.pop("now", FIXED_NOW),
        **kwargs,
    )
