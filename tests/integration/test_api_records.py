"""Integration tests for API endpoints"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from ledgerdesk.infrastructure.database.models import LoanRow, ReserveRow

pytestmark = pytest.mark.integration


def create_loan(api: TestClient, **overrides) -> dict:
    body = {
        "client": "Acme Ltd",
        "principal": "1000",
        "event_count": 4,
        "schedule_start": "2024-01-01",
        "frequency_days": 7,
    }
    body.update(overrides)
    response = api.post("/v1/loans", json=body, params={"as_of": "2024-01-03"})
    assert response.status_code == 201, response.text
    return response.json()


def create_reserve(api: TestClient, **overrides) -> dict:
    body = {
        "client": "Beta LLC",
        "principal": "1000",
        "event_count": 4,
        "schedule_start": "2024-01-01",
    }
    body.update(overrides)
    response = api.post("/v1/reserves", json=body, params={"as_of": "2024-01-03"})
    assert response.status_code == 201, response.text
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "ledgerdesk_mutation" in response.text


def test_request_id_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_create_loan_with_fee(client: TestClient, notifier):
    """Test POST /v1/loans derives installment from principal plus fee"""
    data = create_loan(client, event_count=5, provider_fee="100")

    assert Decimal(data["event_amount"]) == Decimal("220")
    assert Decimal(data["effective_principal"]) == Decimal("1100")
    assert Decimal(data["base_per_event"]) == Decimal("200")
    assert Decimal(data["fee_per_event"]) == Decimal("20")
    assert data["provider_display"] == "TruFunding"
    assert data["planned_dates"] == ["2024-01-01", "2024-01-08", "2024-01-15", "2024-01-22", "2024-01-29"]
    assert data["overdue"] is True
    assert data["completed_count"] == 0
    assert data["event_notes"] == [""] * 5
    assert data["next_due_date"] == "2024-01-01"
    assert data["due_this_week"] is True
    assert data["due_now"] is None
    assert notifier.events == [
        {"collection": "loans", "record_id": data["id"], "operation": "create", "owner_id": "owner-a"}
    ]


def test_create_rejects_invalid_body(client: TestClient):
    """Test request validation on counts and dates"""
    response = client.post(
        "/v1/loans",
        json={"client": "X", "principal": "100", "event_count": 0, "schedule_start": "2024-01-01"},
    )
    assert response.status_code == 422

    response = client.post(
        "/v1/loans",
        json={"client": "X", "principal": "100", "event_count": 2, "schedule_start": "2024-02-30"},
    )
    assert response.status_code == 400


def test_record_event_with_note_late(client: TestClient, notifier):
    """Test paying late with a note: rebased next due, note in slot 0"""
    loan = create_loan(client)

    response = client.post(
        f"/v1/loans/{loan['id']}/events",
        json={"note": "paid late"},
        params={"as_of": "2024-01-20"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "applied"
    record = data["record"]
    assert record["completed_count"] == 1
    assert record["actual_dates"] == ["2024-01-20"]
    assert record["event_notes"][0] == "paid late"
    assert record["next_due_date"] == "2024-01-27"
    assert record["overdue_count"] == 2
    assert notifier.events[-1]["operation"] == "record_event"


def test_record_event_without_body(client: TestClient):
    loan = create_loan(client)
    response = client.post(f"/v1/loans/{loan['id']}/events", params={"as_of": "2024-01-02"})

    assert response.status_code == 200
    assert response.json()["record"]["actual_dates"] == ["2024-01-02"]


def test_record_event_backdated(client: TestClient):
    loan = create_loan(client)
    response = client.post(
        f"/v1/loans/{loan['id']}/events",
        json={"actual_date": "2024-01-01"},
        params={"as_of": "2024-01-05"},
    )
    assert response.json()["record"]["next_due_date"] == "2024-01-08"


def test_reverse_keeps_note(client: TestClient):
    """Test POST /reverse drops the date but keeps the note"""
    loan = create_loan(client)
    client.post(f"/v1/loans/{loan['id']}/events", json={"note": "cheque"}, params={"as_of": "2024-01-02"})

    response = client.post(f"/v1/loans/{loan['id']}/reverse", params={"as_of": "2024-01-02"})
    record = response.json()["record"]

    assert response.json()["outcome"] == "applied"
    assert record["completed_count"] == 0
    assert record["actual_dates"] == []
    assert record["event_notes"][0] == "cheque"

    again = client.post(f"/v1/loans/{loan['id']}/reverse")
    assert again.json()["outcome"] == "already_empty"


def test_close_is_idempotent(client: TestClient, notifier):
    """Test POST /close fills remaining events once and then no-ops"""
    loan = create_loan(client)

    first = client.post(f"/v1/loans/{loan['id']}/close", params={"as_of": "2024-01-10"})
    published = len(notifier.events)
    second = client.post(f"/v1/loans/{loan['id']}/close", params={"as_of": "2024-01-11"})

    assert first.json()["outcome"] == "applied"
    record = first.json()["record"]
    assert record["closed"] is True
    assert record["actual_dates"] == ["2024-01-10"] * 4
    assert Decimal(record["remaining_balance"]) == Decimal("0")
    assert record["next_due_date"] is None

    assert second.json()["outcome"] == "already_complete"
    assert second.json()["record"] == record
    assert len(notifier.events) == published

    paid = client.post(f"/v1/loans/{loan['id']}/events")
    assert paid.json()["outcome"] == "already_complete"


def test_set_note(client: TestClient):
    """Test PUT a note on a future event"""
    reserve = create_reserve(client)

    response = client.put(f"/v1/reserves/{reserve['id']}/notes/3", json={"note": "final"})
    assert response.status_code == 200
    assert response.json()["record"]["event_notes"] == ["", "", "", "final"]
    assert response.json()["record"]["completed_count"] == 0

    response = client.put(f"/v1/reserves/{reserve['id']}/notes/4", json={"note": "nope"})
    assert response.status_code == 400


def test_reserve_due_flags(client: TestClient):
    """Test reserve responses carry due-now and overdue-inclusive due-this-week"""
    reserve = create_reserve(client)

    response = client.get(f"/v1/reserves/{reserve['id']}", params={"as_of": "2024-01-10"})
    data = response.json()

    assert Decimal(data["event_amount"]) == Decimal("250")
    assert data["due_now"] is True
    assert data["overdue"] is True
    assert Decimal(data["fee_per_event"]) == Decimal("0")
    assert data["provider_display"] is None
    assert data["due_this_week"] is True


def test_unknown_and_foreign_records_404(client: TestClient):
    loan = create_loan(client)

    assert client.get("/v1/loans/9999").status_code == 404
    assert client.get(f"/v1/loans/{loan['id']}", headers={"X-Owner-ID": "owner-b"}).status_code == 404
    assert client.post(f"/v1/loans/{loan['id']}/close", headers={"X-Owner-ID": "owner-b"}).status_code == 404


def test_missing_owner_and_bad_clock(client: TestClient):
    assert client.get("/v1/loans", headers={"X-Owner-ID": ""}).status_code == 422
    assert client.get("/v1/loans", params={"as_of": "10/01/2024"}).status_code == 400
    assert client.get("/v1/mortgages").status_code == 422


def test_malformed_stored_record_409(client: TestClient, db):
    """Test a row whose counter disagrees with its history is refused"""
    row = LoanRow(
        owner_id="owner-a",
        client="Broken",
        total=Decimal("100"),
        paid_count=2,
        total_installments=4,
        start_date="2024-01-01",
        freq_days=7,
        payment_dates=["2024-01-01"],
        payment_notes=[],
        factoring_fee=Decimal("0"),
    )
    db.add(row)
    db.commit()

    assert client.get(f"/v1/loans/{row.id}").status_code == 409
    assert client.post(f"/v1/loans/{row.id}/events").status_code == 409


def test_zero_length_reserve_409(client: TestClient, db):
    """Test a stored schedule of zero events is refused rather than defaulted"""
    row = ReserveRow(
        owner_id="owner-a",
        client="Zeroed",
        amount=Decimal("100"),
        installments=0,
        date="2024-01-01",
        freq_days=7,
        paid_count=0,
        deduction_dates=[],
        deduction_notes=[],
    )
    db.add(row)
    db.commit()

    assert client.get(f"/v1/reserves/{row.id}").status_code == 409


def test_custom_provider_display(client: TestClient):
    loan = create_loan(client, provider_type="Other", provider_name=" Northwind Capital ")
    assert loan["provider_display"] == "Northwind Capital"


def test_list_and_delete(client: TestClient, notifier):
    first = create_loan(client)
    second = create_loan(client, client="Other")

    listed = client.get("/v1/loans", params={"as_of": "2024-01-03"}).json()
    assert [r["id"] for r in listed] == [first["id"], second["id"]]

    assert client.delete(f"/v1/loans/{first['id']}").status_code == 204
    assert notifier.events[-1]["operation"] == "delete"
    assert client.get(f"/v1/loans/{first['id']}").status_code == 404


def test_overview(client: TestClient):
    """Test GET /v1/overview headline numbers and lists"""
    loan = create_loan(client)
    create_loan(client, client="Later", principal="400", schedule_start="2024-02-05")
    create_reserve(client)

    data = client.get("/v1/overview", params={"as_of": "2024-01-03"}).json()

    assert data["week_label"] == "01 Jan – 07 Jan"
    assert Decimal(data["total_outstanding"]) == Decimal("1400")
    assert data["active_loans"] == 2
    assert data["loans_due_count"] == 1
    assert Decimal(data["loans_due_amount"]) == Decimal("250")
    assert data["reserves_due_count"] == 1
    assert Decimal(data["reserves_due_amount"]) == Decimal("250")
    assert [r["id"] for r in data["loans_due"]] == [loan["id"]]
    assert [r["client"] for r in data["upcoming"]] == ["Later"]
    assert [s["color"] for s in data["portfolio"]] == ["#4f8ef7", "#7c5cfc"]


def test_overview_next_week_keeps_overdue_reserve(client: TestClient):
    """Test the loan/reserve asymmetry once the first event is a week late"""
    create_loan(client)
    create_reserve(client)

    data = client.get("/v1/overview", params={"as_of": "2024-01-10"}).json()

    assert data["loans_due_count"] == 0
    assert data["reserves_due_count"] == 1


def test_closed_listing(client: TestClient):
    loan = create_loan(client)
    create_reserve(client)
    client.post(f"/v1/loans/{loan['id']}/close", params={"as_of": "2024-01-04"})

    data = client.get("/v1/closed").json()

    assert [r["id"] for r in data["loans"]] == [loan["id"]]
    assert data["reserves"] == []
