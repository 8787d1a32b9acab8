from conftest import as_member


def test_missing_member_header_is_unauthenticated(client):
    resp = client.get("/trips/")
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthenticated"


def test_creator_is_admin_and_roster_is_in_join_order(client, trip):
    resp = client.get(f"/trips/{trip}", headers=as_member("bob"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Lisbon"
    assert body["created_by"] == "alice"
    assert [(m["member_id"], m["role"]) for m in body["members"]] == [
        ("alice", "admin"),
        ("bob", "member"),
        ("carol", "member"),
    ]


def test_list_only_returns_callers_trips(client, trip):
    client.post("/trips/", json={"name": "Solo"}, headers=as_member("dave"))
    names = [t["name"] for t in client.get("/trips/", headers=as_member("bob")).json()]
    assert names == ["Lisbon"]


def test_outsider_cannot_view_trip(client, trip):
    resp = client.get(f"/trips/{trip}", headers=as_member("mallory"))
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


def test_unknown_trip_is_not_found(client):
    resp = client.get("/trips/nope", headers=as_member("alice"))
    assert resp.status_code == 404
    assert resp.json()["detail"] == {"resource": "trip", "id": "nope"}


def test_only_admin_manages_members(client, trip):
    resp = client.post(
        f"/trips/{trip}/members", json={"member_id": "dave"}, headers=as_member("bob")
    )
    assert resp.status_code == 403

    again = client.post(
        f"/trips/{trip}/members", json={"member_id": "bob"}, headers=as_member("alice")
    )
    assert again.status_code == 422

    removed = client.delete(f"/trips/{trip}/members/carol", headers=as_member("alice"))
    assert removed.status_code == 204
    missing = client.delete(f"/trips/{trip}/members/carol", headers=as_member("alice"))
    assert missing.status_code == 404
    creator = client.delete(f"/trips/{trip}/members/alice", headers=as_member("alice"))
    assert creator.status_code == 422


def test_blank_trip_name_is_request_validation_error(client):
    resp = client.post("/trips/", json={"name": "   "}, headers=as_member("alice"))
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


def test_health_and_root(client, trip):
    assert client.get("/health").json() == {
        "status": "ok",
        "version": "0.1.0",
        "trips": 1,
        "expenses": 0,
    }
    assert client.get("/").json()["message"] == "Trip Expense Splitter API"
