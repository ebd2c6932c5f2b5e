"""Tests for case CRUD and the case-scoped views."""

from decimal import Decimal

import pytest

from casedesk.models.database import Case, CaseBillingItem, Task
from casedesk.services import case_service


def test_create_case_starts_with_zero_billing(make_case):
    case = make_case(amount_paid=0)

    assert case["total_billed"] == 0
    assert case["amount_paid"] == 0
    assert case["payment_status"] == "Pendiente de Facturación"
    assert case["status"] == "Abierto"


def test_create_case_rejects_missing_and_negative_fields(client):
    response = client.post(
        "/api/v1/cases",
        json={"case_number": "", "client_name": "X", "type": "Civil", "assigned_lawyer": "A"},
    )
    assert response.status_code == 422

    response = client.post(
        "/api/v1/cases",
        json={
            "case_number": "1",
            "client_name": "X",
            "type": "Civil",
            "assigned_lawyer": "A",
            "amount_paid": -5,
        },
    )
    assert response.status_code == 422


def test_create_case_rejects_unknown_status(client):
    response = client.post(
        "/api/v1/cases",
        json={
            "case_number": "1",
            "client_name": "X",
            "type": "Civil",
            "assigned_lawyer": "A",
            "status": "Reabierto",
        },
    )
    assert response.status_code == 422


def test_list_cases_newest_first(client, make_case):
    first = make_case(case_number="A-1")
    second = make_case(case_number="A-2")

    response = client.get("/api/v1/cases")

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [second["id"], first["id"]]


def test_case_options_sorted_by_number(client, make_case):
    make_case(case_number="B-2")
    make_case(case_number="A-9")

    response = client.get("/api/v1/cases/options")

    assert [c["case_number"] for c in response.json()] == ["A-9", "B-2"]
    assert set(response.json()[0]) == {"id", "case_number", "client_name"}


def test_get_missing_case_returns_404(client):
    response = client.get("/api/v1/cases/999")

    assert response.status_code == 404
    assert response.json()["detail"] == "Case not found"


def test_update_case_refreshes_linked_task_labels(client, make_case, make_task):
    case = make_case()
    task = make_task(case_id=case["id"])
    assert task["case_name"] == "2024-001 - Juan Pérez"

    payload = {
        "case_number": "2024-001",
        "client_name": "Juan Pérez Gómez",
        "type": "Civil",
        "status": "Cerrado",
        "assigned_lawyer": "María López",
        "payment_status": "Pagado Completo",
        "amount_paid": 300,
    }
    response = client.put(f"/api/v1/cases/{case['id']}", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Cerrado"
    assert body["amount_paid"] == 300
    assert client.get(f"/api/v1/tasks/{task['id']}").json()["case_name"] == "2024-001 - Juan Pérez Gómez"


def test_update_missing_case_returns_404(client):
    payload = {"case_number": "1", "client_name": "X", "type": "Civil", "assigned_lawyer": "A"}

    assert client.put("/api/v1/cases/42", json=payload).status_code == 404


def test_delete_case_removes_billing_and_detaches_tasks(client, db_session, make_case, make_rate, make_task):
    case = make_case()
    rate = make_rate()
    client.post(f"/api/v1/cases/{case['id']}/billing-items", json={"billable_item_id": rate["id"]})
    task = make_task(case_id=case["id"])

    response = client.delete(f"/api/v1/cases/{case['id']}")

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.query(Case).count() == 0
    assert db_session.query(CaseBillingItem).count() == 0
    detached = db_session.query(Task).filter(Task.id == task["id"]).one()
    assert detached.case_id is None


def test_delete_missing_case_returns_404(client):
    assert client.delete("/api/v1/cases/5").status_code == 404


def test_case_tasks_ordered_by_due_date(client, make_case, make_task):
    case = make_case()
    later = make_task(case_id=case["id"], task_name="Later", due_date="2030-05-10T10:00:00")
    sooner = make_task(case_id=case["id"], task_name="Sooner", due_date="2030-05-01T10:00:00")
    make_task(task_name="Unrelated", due_date="2030-04-01T10:00:00")

    response = client.get(f"/api/v1/cases/{case['id']}/tasks")

    assert [t["id"] for t in response.json()] == [sooner["id"], later["id"]]


def test_failed_total_repair_rolls_back(db_session, make_case, monkeypatch):
    case = make_case()
    stale = db_session.get(Case, case["id"])
    stale.total_billed = Decimal("50.00")
    db_session.commit()

    rollbacks = []

    def failing_commit():
        raise RuntimeError("database is locked")

    monkeypatch.setattr(db_session, "commit", failing_commit)
    monkeypatch.setattr(db_session, "rollback", lambda: rollbacks.append(True))

    with pytest.raises(RuntimeError):
        case_service.get_case(db_session, case["id"])
    assert rollbacks == [True]
