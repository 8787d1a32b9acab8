import pytest

from conftest import as_member


def post_expense(client, trip, payer="alice", **body):
    payload = {"trip_id": trip, "description": "Dinner", "amount": 90}
    payload.update(body)
    return client.post("/expenses/", json=payload, headers=as_member(payer))


def test_equal_split_defaults_to_roster(client, trip):
    resp = post_expense(client, trip)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["group_id"] == trip
    assert body["payer_id"] == "alice"
    assert body["currency"] == "USD"
    assert body["category"] == "other"
    assert body["split_policy"] == "equal"
    assert [(p["member_id"], p["share"]) for p in body["participants"]] == [
        ("alice", 30.0),
        ("bob", 30.0),
        ("carol", 30.0),
    ]


def test_custom_split_is_passed_through(client, trip):
    resp = post_expense(
        client,
        trip,
        split_type="custom",
        currency="eur",
        category="Food",
        participants=[{"member_id": "bob", "share": 60}, {"member_id": "carol", "share": 30}],
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["currency"] == "EUR"
    assert body["category"] == "food"
    assert [p["member_id"] for p in body["participants"]] == ["bob", "carol"]


def test_share_mismatch_names_the_deviation(client, trip):
    resp = post_expense(
        client,
        trip,
        amount=100,
        split_type="custom",
        participants=[{"member_id": "bob", "share": 50}, {"member_id": "carol", "share": 45}],
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "share_mismatch"
    assert body["detail"]["difference"] == pytest.approx(-5.0)
    # Nothing persisted
    listing = client.get(f"/expenses/trip/{trip}", headers=as_member("alice")).json()
    assert listing["pagination"]["total"] == 0


@pytest.mark.parametrize(
    "body, code",
    [
        ({"amount": 0}, "invalid_amount"),
        ({"amount": 0.001}, "invalid_amount"),
        ({"category": "fuel"}, "invalid_category"),
        ({"split_type": "ratio"}, "invalid_split_policy"),
        ({"split_type": "custom", "participants": []}, "empty_participants"),
        ({"member_ids": ["bob", "bob"]}, "duplicate_participant"),
        ({"description": "   "}, "validation_error"),
    ],
)
def test_invalid_expenses_are_rejected_with_specific_codes(client, trip, body, code):
    resp = post_expense(client, trip, **body)
    assert resp.status_code == 422
    assert resp.json()["error"] == code


def test_outsider_cannot_add_expense(client, trip):
    resp = post_expense(client, trip, payer="mallory")
    assert resp.status_code == 403


def test_listing_is_paginated_and_filterable(client, trip):
    for category in ("food", "food", "shopping"):
        assert post_expense(client, trip, category=category).status_code == 201

    page1 = client.get(f"/expenses/trip/{trip}", headers=as_member("bob")).json()
    assert page1["pagination"] == {"current": 1, "pages": 2, "total": 3}
    assert len(page1["expenses"]) == 2
    assert page1["expenses"][0]["category"] == "shopping"

    page2 = client.get(f"/expenses/trip/{trip}?page=2", headers=as_member("bob")).json()
    assert len(page2["expenses"]) == 1

    food = client.get(
        f"/expenses/trip/{trip}?category=food&limit=10", headers=as_member("bob")
    ).json()
    assert food["pagination"] == {"current": 1, "pages": 1, "total": 2}

    bad = client.get(f"/expenses/trip/{trip}?category=fuel", headers=as_member("bob"))
    assert bad.status_code == 422


def test_summary_scenario(client, trip):
    post_expense(client, trip, payer="alice", amount=120)
    post_expense(client, trip, payer="bob", amount=60, category="transportation")

    resp = client.get(f"/expenses/trip/{trip}/summary", headers=as_member("carol"))
    assert resp.status_code == 200
    summary = resp.json()
    assert summary["total_amount"] == 180.0
    assert summary["total_expenses"] == 2
    assert summary["category_breakdown"] == {"other": 120.0, "transportation": 60.0}
    assert [(m["member_id"], m["balance"]) for m in summary["member_balances"]] == [
        ("alice", 60.0),
        ("bob", 0.0),
        ("carol", -60.0),
    ]
    assert summary["settlements"] == [
        {"from_member_id": "carol", "to_member_id": "alice", "amount": 60.0}
    ]
    again = client.get(f"/expenses/trip/{trip}/summary", headers=as_member("carol"))
    assert again.json() == summary


def test_summary_reports_most_recent_currency(client, trip):
    post_expense(client, trip, currency="EUR")
    post_expense(client, trip, currency="GBP")
    summary = client.get(f"/expenses/trip/{trip}/summary", headers=as_member("alice")).json()
    assert summary["currency"] == "GBP"


def test_summary_keeps_removed_members(client, trip):
    post_expense(client, trip, amount=90)
    client.delete(f"/trips/{trip}/members/carol", headers=as_member("alice"))
    summary = client.get(f"/expenses/trip/{trip}/summary", headers=as_member("alice")).json()
    assert [m["member_id"] for m in summary["member_balances"]] == ["alice", "bob", "carol"]
    assert summary["member_balances"][2]["balance"] == -30.0


def test_get_and_share(client, trip):
    expense_id = post_expense(client, trip, member_ids=["alice", "bob"]).json()["id"]
    assert client.get(f"/expenses/{expense_id}", headers=as_member("carol")).status_code == 200
    share = client.get(f"/expenses/{expense_id}/share", headers=as_member("bob")).json()
    assert share == {
        "expense_id": expense_id,
        "member_id": "bob",
        "is_participant": True,
        "share": 45.0,
    }
    carol = client.get(f"/expenses/{expense_id}/share", headers=as_member("carol")).json()
    assert carol["is_participant"] is False and carol["share"] == 0.0

    missing = client.get("/expenses/unknown", headers=as_member("alice"))
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_update_rules(client, trip):
    expense_id = post_expense(client, trip, payer="bob").json()["id"]

    # carol is neither payer nor admin
    denied = client.patch(
        f"/expenses/{expense_id}", json={"description": "x"}, headers=as_member("carol")
    )
    assert denied.status_code == 403

    # payer edits
    ok = client.patch(
        f"/expenses/{expense_id}",
        json={"amount": 60, "member_ids": ["bob", "carol"]},
        headers=as_member("bob"),
    )
    assert ok.status_code == 200, ok.text
    assert [p["share"] for p in ok.json()["participants"]] == [30.0, 30.0]

    # amount alone no longer matches the stored shares
    mismatch = client.patch(
        f"/expenses/{expense_id}", json={"amount": 61}, headers=as_member("alice")
    )
    assert mismatch.status_code == 422
    assert mismatch.json()["error"] == "share_mismatch"

    # admin may dispute
    disputed = client.patch(
        f"/expenses/{expense_id}", json={"status": "disputed"}, headers=as_member("alice")
    )
    assert disputed.json()["status"] == "disputed"

    empty = client.patch(f"/expenses/{expense_id}", json={}, headers=as_member("alice"))
    assert empty.status_code == 422
    assert empty.json()["error"] == "validation_error"

    stored = client.get(f"/expenses/{expense_id}", headers=as_member("alice")).json()
    assert stored["total_amount"] == 60.0
    assert stored["status"] == "disputed"


def test_settle_flow(client, trip):
    expense_id = post_expense(client, trip).json()["id"]
    settled = client.put(f"/expenses/{expense_id}/settle", headers=as_member("carol"))
    assert settled.status_code == 200
    body = settled.json()
    assert body["status"] == "settled"
    assert all(p["settled"] for p in body["participants"])

    again = client.put(f"/expenses/{expense_id}/settle", headers=as_member("bob"))
    assert again.status_code == 200
    assert again.json()["updated_at"] == body["updated_at"]

    reopen = client.patch(
        f"/expenses/{expense_id}", json={"status": "pending"}, headers=as_member("alice")
    )
    assert reopen.status_code == 422
    assert reopen.json()["error"] == "invalid_status_transition"


def test_receipt_and_location_via_api(client, trip):
    resp = post_expense(
        client,
        trip,
        receipt={"url": "https://img.example/r.jpg", "public_id": "abc"},
        location={"name": "Time Out Market", "coordinates": [-9.1459, 38.7069]},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["receipt"] == {"url": "https://img.example/r.jpg", "public_id": "abc"}
    assert body["location"] == {
        "name": "Time Out Market",
        "type": "Point",
        "coordinates": [-9.1459, 38.7069],
    }

    bad = client.patch(
        f"/expenses/{body['id']}",
        json={"location": {"coordinates": [0, 95]}},
        headers=as_member("alice"),
    )
    assert bad.status_code == 422
    assert bad.json()["error"] == "validation_error"

    plain = post_expense(client, trip).json()
    assert plain["receipt"] is None and plain["location"] is None


def test_delete_rules(client, trip):
    expense_id = post_expense(client, trip, payer="bob").json()["id"]
    assert client.delete(f"/expenses/{expense_id}", headers=as_member("carol")).status_code == 403
    assert client.delete(f"/expenses/{expense_id}", headers=as_member("bob")).status_code == 204
    assert client.delete(f"/expenses/{expense_id}", headers=as_member("bob")).status_code == 404
