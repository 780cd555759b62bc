import pytest
from fastapi.testclient import TestClient

from sideledger.errors import LedgerError
from sideledger.main import create_app
from sideledger.settings import Settings


ADMIN_HEADERS = {"user-id": "boss"}
U1 = {"user-id": "u1"}


@pytest.fixture
def client():
    app = create_app(Settings(admin_ids=("boss",)))
    return TestClient(app)


def _create(client, headers=U1, **overrides):
    body = {
        "amount": 50,
        "type": "INCOME",
        "category": "SALARY",
        "description": "paycheck",
        "date": "2024-01-15",
        "userId": headers["user-id"],
    }
    body.update(overrides)
    return client.post("/api/transactions", json=body, headers=headers)


def test_create_and_list_transactions(client):
    res = _create(client)
    assert res.status_code == 201
    created = res.json()
    assert created["status"] == "PENDING"
    assert created["sourceId"] == "personal"
    assert created["userId"] == "u1"
    assert created["createdAt"].endswith("Z")

    _create(client, headers={"user-id": "u2"})

    listed = client.get("/api/transactions", headers=U1).json()
    assert [row["id"] for row in listed] == [created["id"]]


@pytest.mark.parametrize(
    "method,path",
    [
        ("post", "/api/transactions"),
        ("get", "/api/transactions"),
        ("patch", "/api/transactions/abc/status"),
        ("get", "/api/insights"),
        ("get", "/api/summary"),
        ("get", "/api/sources"),
    ],
)
def test_missing_identity_is_unauthorized(client, method, path):
    kwargs = {"json": {}} if method in {"post", "patch"} else {}
    res = getattr(client, method)(path, **kwargs)
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_create_validation_error(client):
    res = _create(client, amount=0, category="RENT")
    assert res.status_code == 400
    assert set(res.json()["fields"]) == {"amount", "category"}
    assert client.get("/api/transactions", headers=U1).json() == []


def test_non_object_body_is_bad_request(client):
    res = client.post("/api/transactions", json=[1, 2], headers=U1)
    assert res.status_code == 400


def test_status_change_flow(client):
    txn_id = _create(client).json()["id"]

    res = client.patch(
        f"/api/transactions/{txn_id}/status", json={"status": "APPROVED"}, headers=U1
    )
    assert res.status_code == 403
    assert client.get("/api/transactions", headers=U1).json()[0]["status"] == "PENDING"

    res = client.patch(
        f"/api/transactions/{txn_id}/status", json={"status": "PENDING"}, headers=ADMIN_HEADERS
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid status"

    res = client.patch(
        "/api/transactions/missing/status", json={"status": "APPROVED"}, headers=ADMIN_HEADERS
    )
    assert res.status_code == 404

    res = client.patch(
        f"/api/transactions/{txn_id}/status", json={"status": "APPROVED"}, headers=ADMIN_HEADERS
    )
    assert res.status_code == 200
    assert res.json()["status"] == "APPROVED"
    assert client.get("/api/transactions", headers=U1).json()[0]["status"] == "APPROVED"


@pytest.mark.parametrize("txn_id", ["known", "missing"])
@pytest.mark.parametrize("kwargs", [{}, {"json": [1]}, {"json": {"status": "APPROVED"}}])
def test_status_change_by_non_admin_is_forbidden(client, txn_id, kwargs):
    if txn_id == "known":
        txn_id = _create(client).json()["id"]
    res = client.patch(f"/api/transactions/{txn_id}/status", headers=U1, **kwargs)
    assert res.status_code == 403
    assert res.json() == {"error": "Forbidden"}


@pytest.mark.parametrize("kwargs", [{}, {"json": {}}, {"json": {"status": 1}}])
def test_status_change_without_valid_status(client, kwargs):
    txn_id = _create(client).json()["id"]
    res = client.patch(
        f"/api/transactions/{txn_id}/status", headers=ADMIN_HEADERS, **kwargs
    )
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid status"
    assert client.get("/api/transactions", headers=U1).json()[0]["status"] == "PENDING"


def test_create_with_amount_beyond_float_range(client):
    res = _create(client, amount=int("9" * 400))
    assert res.status_code == 400
    assert set(res.json()["fields"]) == {"amount"}

def test_edit_transaction(client):
    txn_id = _create(client).json()["id"]

    res = client.patch(
        f"/api/transactions/{txn_id}", json={"description": "bonus"}, headers=U1
    )
    assert res.status_code == 200
    assert res.json()["description"] == "bonus"

    res = client.patch(
        f"/api/transactions/{txn_id}", json={"description": "mine"}, headers={"user-id": "u2"}
    )
    assert res.status_code == 404

    res = client.patch(
        f"/api/transactions/{txn_id}", json={"amount": 0}, headers={"user-id": "u2"}
    )
    assert res.status_code == 404


def test_insights_are_static(client):
    res = client.get("/api/insights", headers=U1)
    assert res.status_code == 200
    insights = res.json()
    assert [item["type"] for item in insights] == [
        "SPENDING_PATTERN",
        "BUDGET_RECOMMENDATION",
        "SAVING_OPPORTUNITY",
    ]
    _create(client)
    assert client.get("/api/insights", headers=U1).json() == insights


def test_summary(client):
    _create(client)
    _create(client, amount=20, type="EXPENSE", category="FOOD", date="2024-01-20")

    summary = client.get("/api/summary", headers=U1).json()
    assert summary["totals"] == {"income": 50, "expense": 20, "balance": 30}
    assert summary["monthly"] == [{"month": "Jan", "income": 50, "expense": 20}]
    assert summary["sources"][0]["sourceId"] == "personal"
    assert summary["recent"][0]["description"] == "paycheck"


def test_summary_with_year_labels():
    client = TestClient(create_app(Settings(month_labels_with_year=True)))
    _create(client)
    summary = client.get("/api/summary", headers=U1).json()
    assert summary["monthly"][0]["month"] == "Jan 2024"


def test_sources_lifecycle(client):
    res = client.post(
        "/api/sources", json={"name": "Etsy shop", "platform": "Etsy"}, headers=U1
    )
    assert res.status_code == 201
    etsy = res.json()
    assert etsy["type"] == "SIDE_HUSTLE"

    _create(client, sourceId=etsy["id"])

    res = client.delete("/api/sources/personal", headers=U1)
    assert res.status_code == 200
    assert [source["id"] for source in res.json()] == ["personal", etsy["id"]]

    res = client.delete(f"/api/sources/{etsy['id']}", headers=U1)
    assert [source["id"] for source in res.json()] == ["personal"]

    assert client.delete(f"/api/sources/{etsy['id']}", headers=U1).status_code == 404
    assert client.get("/api/transactions", headers=U1).json()[0]["sourceId"] == etsy["id"]

    summary = client.get("/api/summary", headers=U1).json()
    assert summary["recent"][0]["sourceName"] == "Unknown Source"


def test_create_source_validation(client):
    res = client.post("/api/sources", json={"name": ""}, headers=U1)
    assert res.status_code == 400
    assert "name" in res.json()["fields"]


def test_export_csv(client):
    _create(client, description="paycheck, january")
    res = client.get("/api/transactions/export.csv", headers=U1)
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    lines = res.content.decode("utf-8-sig").splitlines()
    assert lines[0] == "id,sourceId,date,type,amount,category,description,status"
    assert lines[1].endswith(',2024-01-15,INCOME,50.00,SALARY,"paycheck, january",PENDING')


def test_sources_are_private_to_their_owner(client):
    etsy = client.post("/api/sources", json={"name": "Etsy shop"}, headers=U1).json()
    u2 = {"user-id": "u2"}

    assert [source["id"] for source in client.get("/api/sources", headers=u2).json()] == [
        "personal"
    ]
    assert client.delete(f"/api/sources/{etsy['id']}", headers=u2).status_code == 404
    summary = client.get("/api/summary", headers=u2).json()
    assert [row["sourceId"] for row in summary["sources"]] == ["personal"]

    listed = client.get("/api/sources", headers=U1).json()
    assert [source["id"] for source in listed] == ["personal", etsy["id"]]


def test_unmapped_ledger_error_is_bad_request():
    app = create_app(Settings())

    @app.get("/odd")
    def odd():
        raise LedgerError("odd failure")

    res = TestClient(app).get("/odd")
    assert res.status_code == 400
    assert res.json() == {"error": "odd failure"}
