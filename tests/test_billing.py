"""Tests for the rates catalogue and the case total_billed bookkeeping."""

from decimal import Decimal

import pytest

from casedesk.models.database import Case, CaseBillingItem


def _bill(client, case_id, **payload):
    return client.post(f"/api/v1/cases/{case_id}/billing-items", json=payload)


def _case_total(client, case_id):
    return client.get(f"/api/v1/cases/{case_id}").json()["total_billed"]


class TestRates:
    def test_create_and_list_rates(self, client, make_rate):
        make_rate(name="Redacción de contrato", price=300)
        make_rate(name="Audiencia", price=200)

        recent = client.get("/api/v1/billing/rates").json()
        by_name = client.get("/api/v1/billing/rates", params={"order": "name"}).json()

        assert len(recent) == 2
        assert [r["name"] for r in by_name] == ["Audiencia", "Redacción de contrato"]

    def test_price_must_be_positive(self, client):
        response = client.post("/api/v1/billing/rates", json={"name": "Gratis", "price": 0})

        assert response.status_code == 422

    def test_description_length_limit(self, client):
        response = client.post(
            "/api/v1/billing/rates", json={"name": "Largo", "price": 10, "description": "x" * 501}
        )

        assert response.status_code == 422

    def test_update_and_delete_rate(self, client, make_rate):
        rate = make_rate()

        updated = client.put(
            f"/api/v1/billing/rates/{rate['id']}", json={"name": "Consulta", "price": 175.5}
        )
        assert updated.status_code == 200
        assert updated.json()["price"] == 175.5

        assert client.delete(f"/api/v1/billing/rates/{rate['id']}").status_code == 204
        assert client.delete(f"/api/v1/billing/rates/{rate['id']}").status_code == 404

    def test_invalid_order_rejected(self, client):
        assert client.get("/api/v1/billing/rates", params={"order": "price"}).status_code == 422


class TestCaseBilling:
    def test_adding_items_updates_total_billed(self, client, make_case, make_rate):
        case = make_case()
        consult = make_rate(name="Consulta", price=150)
        hearing = make_rate(name="Audiencia", price=200.25)

        first = _bill(client, case["id"], billable_item_id=consult["id"], quantity=2)
        second = _bill(client, case["id"], billable_item_id=hearing["id"])

        assert first.status_code == 201
        assert first.json()["total"] == 300
        assert first.json()["name"] == "Consulta"
        assert second.json()["total"] == 200.25
        assert _case_total(client, case["id"]) == 500.25

    def test_deleting_items_recomputes_total(self, client, make_case, make_rate):
        case = make_case()
        rate = make_rate(price=100)
        kept = _bill(client, case["id"], billable_item_id=rate["id"], quantity=1).json()
        removed = _bill(client, case["id"], billable_item_id=rate["id"], quantity=3).json()

        assert client.delete(f"/api/v1/billing-items/{removed['id']}").status_code == 204
        assert _case_total(client, case["id"]) == 100

        assert client.delete(f"/api/v1/billing-items/{kept['id']}").status_code == 204
        assert _case_total(client, case["id"]) == 0

    def test_stored_total_matches_sum_after_each_write(self, client, db_session, make_case, make_rate):
        case = make_case()
        rate = make_rate(price=33.33)

        for quantity in (1, 2, 3):
            _bill(client, case["id"], billable_item_id=rate["id"], quantity=quantity)
            db_session.expire_all()
            stored = db_session.get(Case, case["id"]).total_billed
            items = db_session.query(CaseBillingItem).filter(CaseBillingItem.case_id == case["id"]).all()
            assert Decimal(str(stored)) == sum(Decimal(str(i.total)) for i in items)

    def test_price_override_is_used(self, client, make_case, make_rate):
        case = make_case()
        rate = make_rate(price=150)

        item = _bill(client, case["id"], billable_item_id=rate["id"], quantity=2, price_override=90).json()

        assert item["price_at_time_of_billing"] == 90
        assert item["total"] == 180

    def test_catalogue_edits_do_not_rewrite_billed_items(self, client, make_case, make_rate):
        case = make_case()
        rate = make_rate(name="Consulta", price=150)
        _bill(client, case["id"], billable_item_id=rate["id"])

        client.put(f"/api/v1/billing/rates/{rate['id']}", json={"name": "Consulta VIP", "price": 400})

        items = client.get(f"/api/v1/cases/{case['id']}/billing-items").json()
        assert items[0]["name"] == "Consulta"
        assert items[0]["price_at_time_of_billing"] == 150

    def test_deleting_rate_keeps_billing_line(self, client, make_case, make_rate):
        case = make_case()
        rate = make_rate(price=80)
        _bill(client, case["id"], billable_item_id=rate["id"])

        client.delete(f"/api/v1/billing/rates/{rate['id']}")

        items = client.get(f"/api/v1/cases/{case['id']}/billing-items").json()
        assert len(items) == 1
        assert items[0]["billable_item_id"] is None
        assert _case_total(client, case["id"]) == 80

    def test_unknown_rate_is_rejected(self, client, make_case):
        case = make_case()

        response = _bill(client, case["id"], billable_item_id=404)

        assert response.status_code == 400

    def test_unknown_case_returns_404(self, client, make_rate):
        rate = make_rate()

        assert _bill(client, 999, billable_item_id=rate["id"]).status_code == 404
        assert client.get("/api/v1/cases/999/billing-items").status_code == 404

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, client, make_case, make_rate, quantity):
        case = make_case()
        rate = make_rate()

        assert _bill(client, case["id"], billable_item_id=rate["id"], quantity=quantity).status_code == 422

    def test_reading_case_repairs_stale_total(self, client, db_session, make_case, make_rate):
        case = make_case()
        rate = make_rate(price=120)
        _bill(client, case["id"], billable_item_id=rate["id"])

        db_session.expire_all()
        stale = db_session.get(Case, case["id"])
        stale.total_billed = Decimal("999.00")
        db_session.commit()

        assert _case_total(client, case["id"]) == 120

    def test_recalculate_endpoint(self, client, make_case, make_rate):
        case = make_case()
        rate = make_rate(price=60)
        _bill(client, case["id"], billable_item_id=rate["id"], quantity=2)

        response = client.post(f"/api/v1/cases/{case['id']}/recalculate-total")

        assert response.json() == {"case_id": case["id"], "total_billed": 120}
        assert client.post("/api/v1/cases/999/recalculate-total").status_code == 404
