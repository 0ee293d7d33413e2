import pytest

BOOK = {
    "title": "Engineering Mathematics",
    "author": "B.S. Grewal",
    "details": "44th edition",
    "price": 650,
    "course": "B.Tech",
    "branch": "CSE",
    "stock": 3,
}


def _register(client, headers, **overrides):
    payload = dict(BOOK, **overrides)
    return client.post("/titles/", json=payload, headers=headers)


def test_health(client):
    assert client.get("/health").get_json() == {"ok": True}


def test_register_requires_token(client):
    assert _register(client, {}).status_code == 401


def test_student_cannot_register(client, auth_headers):
    res = _register(client, auth_headers("CSE-1", "student"))
    assert res.status_code == 403
    body = res.get_json()
    assert body["success"] is False
    assert body["error"] == "Forbidden"
    assert "student" in body["message"]


def test_register_and_lookup(client, auth_headers):
    headers = auth_headers()
    res = _register(client, headers)
    body = res.get_json()
    assert res.status_code == 201
    assert [c["id"] for c in body["data"]["copies"]] == ["AA-000001", "AA-000002", "AA-000003"]

    res = client.get("/titles/by-copy/AA-000002", headers=headers)
    assert res.get_json()["data"]["stock"] == 3

    res = client.get("/titles/?title=mathem", headers=headers)
    body = res.get_json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["author"] == "B.S. Grewal"


def test_register_validation_and_duplicates(client, auth_headers):
    headers = auth_headers()
    res = _register(client, headers, stock=500)
    assert res.status_code == 400
    assert res.get_json()["error"] == "ValidationError"

    assert _register(client, headers).status_code == 201
    res = _register(client, headers)
    assert res.status_code == 409
    assert res.get_json()["error"] == "DuplicateError"


def test_update_stock_rules(client, auth_headers):
    headers = auth_headers()
    _register(client, headers)

    res = client.put("/titles/by-copy/AA-000001", json={"stock": 2}, headers=headers)
    assert res.status_code == 409

    res = client.put("/titles/by-copy/AA-000001", json={"stock": 5, "author": "Grewal"}, headers=headers)
    body = res.get_json()
    assert res.status_code == 200
    assert body["added_copies"] == ["AA-000004", "AA-000005"]
    assert body["data"]["author"] == "Grewal"

    assert client.put("/titles/by-copy/QQ-000001", json={"stock": 5}, headers=headers).status_code == 404


def test_issue_return_flow(client, auth_headers):
    headers = auth_headers()
    _register(client, headers)

    res = client.post("/circulation/issue", headers=headers, json={
        "userType": "student", "fileNo": "CSE-1", "bookIds": ["AA-000001", "AA-000009"],
    })
    body = res.get_json()
    assert res.status_code == 200
    assert body["issued"] == ["AA-000001"]
    assert body["failed"] == [{"copy_id": "AA-000009", "reason": "Book not found"}]

    res = client.post("/circulation/issue", headers=headers, json={
        "borrower_kind": "faculty", "borrower_id": "EMP-1", "copy_ids": ["AA-000001"],
    })
    assert res.status_code == 400
    assert res.get_json()["failed"][0]["reason"] == "Already issued"

    mine = client.get("/circulation/me/active", headers=auth_headers("CSE-1", "student")).get_json()
    assert [loan["copy_id"] for loan in mine["data"]] == ["AA-000001"]
    assert mine["data"][0]["fine"] == 0

    res = client.post("/circulation/return", headers=headers, json={
        "borrower_kind": "student", "borrower_id": "CSE-1", "copy_ids": ["AA-000001", "AA-000002"],
    })
    body = res.get_json()
    assert res.status_code == 200
    assert body["returned"] == ["AA-000001"]
    assert body["not_found"] == ["AA-000002"]

    history = client.get("/circulation/borrowers/student/CSE-1/history", headers=headers).get_json()
    assert history["data"][0]["status"] == "Returned"

    track = client.get("/circulation/copies/AA-000001/track", headers=headers).get_json()
    assert track["data"]["current_loan"] is None
    assert len(track["data"]["history"]) == 1
    assert track["data"]["history"][0]["librarian_id"] == "lib-1"


def test_return_everything_missing_is_400(client, auth_headers):
    headers = auth_headers()
    _register(client, headers)
    res = client.post("/circulation/return", headers=headers, json={
        "borrower_kind": "student", "borrower_id": "CSE-1", "copy_ids": ["AA-000001"],
    })
    assert res.status_code == 400
    assert res.get_json()["not_found"] == ["AA-000001"]


def test_bad_borrower_kind(client, auth_headers):
    headers = auth_headers()
    res = client.post("/circulation/issue", headers=headers, json={
        "borrower_kind": "alumni", "borrower_id": "X", "copy_ids": ["AA-000001"],
    })
    assert res.status_code == 400
    assert client.get("/circulation/borrowers/alumni/X/active", headers=headers).status_code == 400


def test_librarian_cannot_use_me_routes(client, auth_headers):
    assert client.get("/circulation/me/active", headers=auth_headers()).status_code == 403


def test_dashboard(client, auth_headers):
    headers = auth_headers("admin-1", "admin")
    _register(client, headers)
    client.post("/circulation/issue", headers=headers, json={
        "borrower_kind": "faculty", "borrower_id": "EMP-1", "copy_ids": ["AA-000003"],
    })
    data = client.get("/circulation/dashboard", headers=headers).get_json()["data"]
    assert data["total_copies"] == 3
    assert data["issued_copies"] == 1
    assert data["available_copies"] == 2
    assert data["open_loans"] == 1


def test_track_unknown_copy_is_404(client, auth_headers):
    assert client.get("/circulation/copies/AA-000001/track", headers=auth_headers()).status_code == 404


@pytest.mark.parametrize("payload", [
    {"borrower_kind": "student", "borrower_id": "CSE-1", "copy_ids": 5},
    {"borrower_kind": "student", "borrower_id": "CSE-1", "copy_ids": {"id": "AA-000001"}},
    {"borrower_kind": 1, "borrower_id": "CSE-1", "copy_ids": ["AA-000001"]},
    {"borrower_kind": ["student"], "borrower_id": "CSE-1", "copy_ids": ["AA-000001"]},
])
@pytest.mark.parametrize("route", ["/circulation/issue", "/circulation/return"])
def test_malformed_circulation_payload_is_400(client, auth_headers, route, payload):
    headers = auth_headers()
    _register(client, headers)
    res = client.post(route, headers=headers, json=payload)
    assert res.status_code == 400
    assert res.get_json()["error"] == "ValidationError"


def test_non_object_body_is_400(client, auth_headers):
    headers = auth_headers()
    res = client.post("/circulation/issue", headers=headers, json=["AA-000001"])
    assert res.status_code == 400
    res = _register(client, headers, title=42)
    assert res.status_code == 400
