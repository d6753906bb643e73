"""
API tests for the tenant data routes: patients, appointments, finances,
stock, clinical records, visits and the backup export.
"""

import json
from urllib.parse import quote

import pytest

from tests.fixtures.api_helpers import (
    create_appointment,
    create_patient,
    create_stock_item,
    create_transaction,
    register_dentist,
)


@pytest.fixture
def other_client(app):
    """A second dentist with their own session."""
    client = app.test_client()
    client.dentist = register_dentist(
        client, email="dr.lopez@example.com", display_name="Pablo Lopez", license_number="MP-54321"
    )
    return client


@pytest.mark.integration
@pytest.mark.api
class TestPatientsApi:
    def test_crud(self, dentist_client):
        patient = create_patient(dentist_client)
        assert patient["full_name"] == "Juan Gomez"
        assert patient["dentist_id"] == dentist_client.dentist["user"]["uid"]

        resp = dentist_client.put(f"/patients/{patient['id']}", json={"phone": "1144441234"})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["phone"] == "1144441234"
        assert resp.get_json()["data"]["first_name"] == "Juan"

        assert dentist_client.delete(f"/patients/{patient['id']}").status_code == 200
        assert dentist_client.get(f"/patients/{patient['id']}").status_code == 404

    def test_search(self, dentist_client):
        create_patient(dentist_client)
        create_patient(dentist_client, first_name="María", last_name="López", email="maria@example.com")

        resp = dentist_client.get("/patients", query_string={"q": "lóp"})
        names = [p["first_name"] for p in resp.get_json()["data"]]
        assert names == ["María"]
        assert len(dentist_client.get("/patients").get_json()["data"]) == 2

    def test_listing_pages_are_clamped(self, dentist_client):
        names = ["Ana", "Beatriz", "Carlos", "Diego", "Elena", "Fabián", "Gloria"]
        for n, name in enumerate(names):
            create_patient(dentist_client, first_name=name, email=f"p{n}@example.com")

        # per_page below the floor is raised to 5
        resp = dentist_client.get("/patients?page=2&per_page=1")
        page = resp.get_json()["data"]
        assert resp.status_code == 200
        assert len(page["items"]) == 2
        assert page["pagination"] == {
            "page": 2, "per_page": 5, "total": 7, "total_pages": 2, "has_prev": True, "has_next": False,
        }

        beyond = dentist_client.get("/patients?page=99").get_json()["data"]
        assert beyond["pagination"]["page"] == 1
        assert beyond["pagination"]["per_page"] == 10
        assert len(beyond["items"]) == 7

        before = dentist_client.get("/patients?page=0&per_page=500").get_json()["data"]
        assert before["pagination"]["page"] == 1
        assert before["pagination"]["per_page"] == 100

        garbage = dentist_client.get("/patients?page=abc").get_json()["data"]
        assert garbage["pagination"]["page"] == 1

    def test_empty_listing_is_one_empty_page(self, other_client):
        page = other_client.get("/patients?page=3").get_json()["data"]
        assert page["items"] == []
        assert page["pagination"]["page"] == 1
        assert page["pagination"]["total"] == 0
        assert page["pagination"]["total_pages"] == 1

    def test_validation_error_names_the_field(self, dentist_client):
        resp = dentist_client.post(
            "/patients",
            json={"first_name": "Juan", "last_name": "Gomez", "phone": "abc", "date_of_birth": "1990-05-20"},
        )
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert body["data"]["field"] == "phone"

    def test_other_dentist_cannot_read_or_delete(self, dentist_client, other_client):
        patient = create_patient(dentist_client)

        resp = other_client.get(f"/patients/{patient['id']}")
        assert resp.status_code == 403
        assert resp.get_json()["data"]["hint"]
        assert other_client.delete(f"/patients/{patient['id']}").status_code == 403
        assert other_client.get("/patients").get_json()["data"] == []
        assert dentist_client.get(f"/patients/{patient['id']}").status_code == 200

    def test_groups_and_monthly_fee(self, dentist_client):
        resp = dentist_client.post(
            "/patients/groups",
            json={
                "group_name": "Equipo Futbol",
                "monthly_price": 30,
                "members": [{"first_name": "Leo", "phone": "1155551234"}, {"first_name": "", "phone": ""}],
            },
        )
        assert resp.status_code == 201
        members = resp.get_json()["data"]
        assert len(members) == 1
        leo = members[0]
        assert leo["last_name"] == ""
        assert leo["date_of_birth"] == "2010-01-01"

        groups = dentist_client.get("/patients/groups").get_json()["data"]
        assert groups == [{"group_name": "Equipo Futbol", "members": 1}]
        group = dentist_client.get(f"/patients/groups/{quote('Equipo Futbol')}").get_json()["data"]
        assert [p["id"] for p in group] == [leo["id"]]

        assert dentist_client.get(f"/patients/{leo['id']}/monthly-fee").get_json()["data"]["due"] is True
        resp = dentist_client.post(f"/patients/{leo['id']}/monthly-fee", json={"payment_method": "transfer"})
        assert resp.status_code == 201
        transaction = resp.get_json()["data"]["transaction"]
        assert transaction["category"] == "mensualidad"
        assert transaction["amount"] == 30
        assert transaction["concept"] == "Mensualidad - Leo"
        assert dentist_client.get(f"/patients/{leo['id']}/monthly-fee").get_json()["data"]["due"] is False

    def test_group_with_half_filled_row_is_rejected(self, dentist_client):
        resp = dentist_client.post(
            "/patients/groups",
            json={"group_name": "Coro", "members": [{"first_name": "Ana", "phone": ""}]},
        )
        assert resp.status_code == 400
        assert resp.get_json()["data"]["field"] == "members"


@pytest.mark.integration
@pytest.mark.api
class TestAppointmentsApi:
    def test_schedule_and_list(self, dentist_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"])
        assert appointment["status"] == "scheduled"

        by_month = dentist_client.get("/appointments?year=2025&month=3").get_json()["data"]
        assert [a["id"] for a in by_month] == [appointment["id"]]
        by_day = dentist_client.get("/appointments?day=2025-03-12").get_json()["data"]
        assert [a["id"] for a in by_day] == [appointment["id"]]
        assert dentist_client.get("/appointments?day=2025-03-13").get_json()["data"] == []
        by_patient = dentist_client.get(f"/patients/{patient['id']}/appointments").get_json()["data"]
        assert len(by_patient) == 1

    def test_past_dates_are_rejected(self, dentist_client):
        patient = create_patient(dentist_client)
        resp = dentist_client.post(
            "/appointments",
            json={"patient_id": patient["id"], "date": "2025-03-09T10:00:00Z", "duration": 30, "type": "consultation"},
        )
        assert resp.status_code == 400
        assert resp.get_json()["data"]["field"] == "date"

    def test_unknown_patient(self, dentist_client):
        resp = dentist_client.post(
            "/appointments",
            json={"patient_id": "missing", "date": "2025-03-12T10:00:00Z", "duration": 30, "type": "consultation"},
        )
        assert resp.status_code == 404

    def test_status_change(self, dentist_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"])
        resp = dentist_client.patch(f"/appointments/{appointment['id']}/status", json={"status": "completed"})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "completed"

    def test_payment_links_both_records_and_mirrors_status(self, dentist_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"], type="cleaning")

        resp = dentist_client.post(
            f"/appointments/{appointment['id']}/payment",
            json={"amount": 80, "payment_method": "card", "status": "pending"},
        )
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        transaction_id = data["transaction"]["id"]
        assert data["appointment"]["transaction_id"] == transaction_id
        assert data["transaction"]["appointment_id"] == appointment["id"]
        assert data["transaction"]["concept"] == "Limpieza - Juan Gomez"

        resp = dentist_client.patch(f"/finances/transactions/{transaction_id}/status", json={"status": "paid"})
        assert resp.status_code == 200
        stored = dentist_client.get(f"/appointments/{appointment['id']}").get_json()["data"]
        assert stored["payment_status"] == "paid"

        payments = dentist_client.get(f"/patients/{patient['id']}/payments").get_json()["data"]
        assert payments["total_paid"] == 80
        assert payments["has_overdue"] is False


@pytest.mark.integration
@pytest.mark.api
class TestFinancesApi:
    def test_monthly_balance(self, dentist_client):
        create_transaction(dentist_client)
        create_transaction(
            dentist_client, amount=50, status="pending", is_possible=True, date="2025-03-06T10:00:00Z"
        )
        create_transaction(
            dentist_client, type="expense", amount=30, category="insumos", concept="Guantes",
            date="2025-03-07T10:00:00Z",
        )
        create_transaction(dentist_client, amount=20, status="pending", date="2025-03-08T10:00:00Z")
        create_transaction(dentist_client, amount=999, date="2025-02-20T10:00:00Z")

        resp = dentist_client.get("/finances/balance?year=2025&month=3")
        assert resp.status_code == 200
        balance = resp.get_json()["data"]
        assert balance["net_income"] == 100
        assert balance["possible_income"] == 50
        assert balance["gross_income"] == 150
        assert balance["expenses"] == 30
        assert balance["balance"] == 70

        listed = dentist_client.get("/finances/transactions?year=2025&month=3").get_json()["data"]
        assert [t["amount"] for t in listed] == [20, 30, 50, 100]

    def test_balance_requires_month(self, dentist_client):
        resp = dentist_client.get("/finances/balance?year=2025")
        assert resp.status_code == 400
        assert resp.get_json()["data"]["field"] == "month"

    def test_other_dentist_cannot_change_status(self, dentist_client, other_client):
        transaction = create_transaction(dentist_client)
        resp = other_client.patch(f"/finances/transactions/{transaction['id']}/status", json={"status": "pending"})
        assert resp.status_code == 403

    def test_links_to_another_dentists_records_are_rejected(self, dentist_client, other_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"])
        own_patient = create_patient(other_client)
        payload = {
            "type": "income",
            "amount": 50,
            "category": "consulta",
            "concept": "Cobro",
            "date": "2025-03-05T15:00:00Z",
            "payment_method": "cash",
            "status": "paid",
        }

        resp = other_client.post(
            "/finances/transactions",
            json={**payload, "patient_id": patient["id"], "appointment_id": appointment["id"]},
        )
        assert resp.status_code == 403
        resp = other_client.post(
            "/finances/transactions",
            json={**payload, "patient_id": own_patient["id"], "appointment_id": appointment["id"]},
        )
        assert resp.status_code == 403
        resp = other_client.post("/finances/transactions", json={**payload, "patient_id": "ghost"})
        assert resp.status_code == 404
        assert other_client.get("/finances/transactions").get_json()["data"] == []

        mine = create_transaction(other_client, patient_id=own_patient["id"])
        resp = other_client.put(f"/finances/transactions/{mine['id']}", json={"patient_id": patient["id"]})
        assert resp.status_code == 403
        assert other_client.get(f"/finances/transactions/{mine['id']}").get_json()["data"]["patient_id"] == own_patient["id"]

    def test_status_edit_through_update_reaches_appointment(self, dentist_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"], type="cleaning")
        resp = dentist_client.post(
            f"/appointments/{appointment['id']}/payment",
            json={"amount": 80, "payment_method": "cash", "status": "pending"},
        )
        transaction_id = resp.get_json()["data"]["transaction"]["id"]

        resp = dentist_client.put(f"/finances/transactions/{transaction_id}", json={"status": "paid"})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "paid"
        stored = dentist_client.get(f"/appointments/{appointment['id']}").get_json()["data"]
        assert stored["payment_status"] == "paid"

    def test_listing_pages(self, dentist_client):
        for day in range(1, 13):
            create_transaction(dentist_client, amount=day, date=f"2025-03-{day:02d}T10:00:00Z")

        first = dentist_client.get("/finances/transactions?year=2025&month=3&page=1").get_json()["data"]
        assert [t["amount"] for t in first["items"]] == list(range(12, 2, -1))
        assert first["pagination"] == {
            "page": 1, "per_page": 10, "total": 12, "total_pages": 2, "has_prev": False, "has_next": True,
        }

        last = dentist_client.get("/finances/transactions?year=2025&month=3&page=2").get_json()["data"]
        assert [t["amount"] for t in last["items"]] == [2, 1]
        assert last["pagination"]["has_prev"] is True
        assert last["pagination"]["has_next"] is False


@pytest.mark.integration
@pytest.mark.api
class TestStockApi:
    def test_quantity_changes_never_go_negative(self, dentist_client):
        item = create_stock_item(dentist_client)

        resp = dentist_client.patch(f"/stock/{item['id']}/quantity", json={"delta": -20})
        assert resp.status_code == 409
        assert dentist_client.get(f"/stock/{item['id']}").get_json()["data"]["quantity"] == 10

        resp = dentist_client.patch(f"/stock/{item['id']}/quantity", json={"delta": -8})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["quantity"] == 2
        assert resp.get_json()["data"]["is_low"] is True

    def test_listing_pages(self, dentist_client):
        for n in range(6):
            create_stock_item(dentist_client, name=f"Insumo {n}")

        page = dentist_client.get("/stock?per_page=5&page=2").get_json()["data"]
        assert [i["name"] for i in page["items"]] == ["Insumo 5"]
        assert page["pagination"]["total"] == 6
        assert page["pagination"]["total_pages"] == 2
        assert len(dentist_client.get("/stock").get_json()["data"]) == 6

    def test_low_stock_listing(self, dentist_client):
        create_stock_item(dentist_client)
        low = create_stock_item(dentist_client, name="Anestesia", category="medication", quantity=1)
        listed = dentist_client.get("/stock/low").get_json()["data"]
        assert [i["id"] for i in listed] == [low["id"]]

    def test_materials_used_in_an_appointment(self, dentist_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"], type="treatment")
        item = create_stock_item(dentist_client)
        base = f"/appointments/{appointment['id']}/materials"

        resp = dentist_client.post(base, json={"stock_item_id": item["id"], "quantity": 3})
        assert resp.status_code == 201
        material = resp.get_json()["data"]
        assert material["stock_item_name"] == "Guantes de nitrilo"
        assert material["total_cost"] == 7.5
        assert dentist_client.get(f"/stock/{item['id']}").get_json()["data"]["quantity"] == 7

        resp = dentist_client.post(base, json={"stock_item_id": item["id"], "quantity": 20})
        assert resp.status_code == 409
        assert dentist_client.get(f"/stock/{item['id']}").get_json()["data"]["quantity"] == 7

        listed = dentist_client.get(base).get_json()["data"]
        assert len(listed["materials"]) == 1
        assert listed["total_cost"] == 7.5

        assert dentist_client.delete(f"{base}/{material['id']}").status_code == 200
        assert dentist_client.get(f"/stock/{item['id']}").get_json()["data"]["quantity"] == 10
        assert dentist_client.get(base).get_json()["data"]["materials"] == []


@pytest.mark.integration
@pytest.mark.api
class TestClinicalApi:
    def test_medical_history_lifecycle(self, dentist_client):
        patient = create_patient(dentist_client)
        base = f"/patients/{patient['id']}/medical-history"

        assert dentist_client.get(base).get_json().get("data") is None

        resp = dentist_client.put(
            base, json={"chief_complaint": "Dolor al masticar", "allergies": ["penicilina"], "budget_amount": 500}
        )
        assert resp.status_code == 200

        resp = dentist_client.put(f"{base}/odontogram/36", json={"status": "caries", "notes": "oclusal"})
        assert resp.status_code == 200
        history = resp.get_json()["data"]
        assert history["odontogram"]["36"] == {"status": "caries", "notes": "oclusal"}
        assert history["chief_complaint"] == "Dolor al masticar"

        resp = dentist_client.post(
            f"{base}/budget-payments",
            json={"date": "2025-03-10T12:00:00Z", "treatment": "Endodoncia", "amount": 200},
        )
        assert resp.status_code == 201
        payment_id = resp.get_json()["data"]["budget_payments"][0]["id"]

        summary = dentist_client.get(f"{base}/budget").get_json()["data"]
        assert summary == {"budget_amount": 500, "total_paid": 200, "remaining": 300}

        resp = dentist_client.delete(f"{base}/budget-payments/{payment_id}")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["budget_payments"] == []

    def test_invalid_tooth_status(self, dentist_client):
        patient = create_patient(dentist_client)
        resp = dentist_client.put(
            f"/patients/{patient['id']}/medical-history/odontogram/36", json={"status": "roto"}
        )
        assert resp.status_code == 400

    def test_history_of_another_dentists_patient(self, dentist_client, other_client):
        patient = create_patient(dentist_client)
        resp = other_client.get(f"/patients/{patient['id']}/medical-history")
        assert resp.status_code == 403

    def test_one_visit_per_appointment(self, dentist_client):
        patient = create_patient(dentist_client)
        appointment = create_appointment(dentist_client, patient["id"])
        payload = {
            "patient_id": patient["id"],
            "visit_date": "2025-03-12T10:30:00Z",
            "appointment_id": appointment["id"],
            "diagnosis": "Caries 36",
            "treatments_performed": ["Obturación"],
        }

        resp = dentist_client.post("/visits", json=payload)
        assert resp.status_code == 201
        visit = resp.get_json()["data"]

        duplicate = dentist_client.post("/visits", json=payload)
        assert duplicate.status_code == 400
        assert duplicate.get_json()["data"]["field"] == "appointment_id"

        linked = dentist_client.get(f"/visits/by-appointment/{appointment['id']}").get_json()["data"]
        assert linked["id"] == visit["id"]
        listed = dentist_client.get(f"/visits?patient_id={patient['id']}").get_json()["data"]
        assert [v["id"] for v in listed] == [visit["id"]]

    def test_visit_listing_without_patient_returns_all(self, dentist_client, other_client):
        first = create_patient(dentist_client)
        second = create_patient(dentist_client, first_name="María", email="maria@example.com")
        older = dentist_client.post(
            "/visits", json={"patient_id": first["id"], "visit_date": "2025-03-01T10:00:00Z", "diagnosis": "Control"}
        ).get_json()["data"]
        newer = dentist_client.post(
            "/visits", json={"patient_id": second["id"], "visit_date": "2025-03-08T10:00:00Z", "diagnosis": "Caries"}
        ).get_json()["data"]

        resp = dentist_client.get("/visits")
        assert resp.status_code == 200
        assert [v["id"] for v in resp.get_json()["data"]] == [newer["id"], older["id"]]
        assert other_client.get("/visits").get_json()["data"] == []


@pytest.mark.integration
@pytest.mark.api
class TestBackupApi:
    def test_export_is_a_dated_attachment(self, dentist_client):
        patient = create_patient(dentist_client)
        create_appointment(dentist_client, patient["id"])

        resp = dentist_client.get("/backup/export")
        assert resp.status_code == 200
        assert resp.headers["Content-Disposition"] == "attachment; filename=backup-dentos-2025-03-10.json"

        data = json.loads(resp.data)
        assert data["dentistInfo"]["email"] == "dra.perez@example.com"
        assert data["metadata"]["totalRecords"] == 2
        assert data["patients"][0]["id"] == patient["id"]

    def test_stats(self, dentist_client):
        create_stock_item(dentist_client)
        stats = dentist_client.get("/backup/stats").get_json()["data"]
        assert stats["stock"] == 1
        assert stats["total_records"] == 1
        assert stats["filename"] == "backup-dentos-2025-03-10.json"


@pytest.mark.integration
@pytest.mark.api
def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "healthy", "database": "ok"}
