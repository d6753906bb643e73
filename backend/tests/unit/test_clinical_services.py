"""
Unit tests for MedicalHistoryService and VisitService.
"""

from datetime import date, datetime, timezone

import pytest

from dentos.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from dentos.domain.entities import Appointment, BudgetPayment, MedicalHistory, Patient, Visit
from dentos.services.medical_history_service import MedicalHistoryService
from dentos.services.visit_service import VisitService
from tests.factories.repository_factories import (
    AppointmentRepositoryFactory,
    MedicalHistoryRepositoryFactory,
    PatientRepositoryFactory,
    VisitRepositoryFactory,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def patient_repo():
    repo = PatientRepositoryFactory.create_mock_full()
    repo.get_by_id.return_value = Patient(
        id="p1", dentist_id="d1", first_name="Juan", last_name="Gomez", date_of_birth=date(1990, 5, 20)
    )
    return repo


@pytest.fixture
def history_repo():
    return MedicalHistoryRepositoryFactory.create_mock_full()


@pytest.fixture
def history_service(history_repo, patient_repo) -> MedicalHistoryService:
    return MedicalHistoryService(history_repo, patient_repo, clock=lambda: NOW)


@pytest.mark.unit
class TestMedicalHistory:
    def test_first_save_creates_document(self, history_service, history_repo):
        saved = history_service.save_history("d1", "p1", {"allergies": ["penicilina"], "budget_amount": 500})
        assert saved.patient_id == "p1"
        assert saved.dentist_id == "d1"
        assert saved.allergies == ["penicilina"]
        history_repo.save.assert_called_once()

    def test_save_merges_and_keeps_budget_payments(self, history_service, history_repo):
        payment = BudgetPayment(id="bp1", date=NOW, treatment="Endodoncia", amount=100)
        history_repo.get_by_patient.return_value = MedicalHistory(
            id="h1", patient_id="p1", dentist_id="d1", chief_complaint="Dolor", budget_payments=[payment]
        )
        saved = history_service.save_history(
            "d1", "p1", {"treatment_plan": "Endodoncia 36", "budget_payments": [], "patient_id": "p9"}
        )
        assert saved.chief_complaint == "Dolor"
        assert saved.treatment_plan == "Endodoncia 36"
        assert saved.budget_payments == [payment]
        assert saved.patient_id == "p1"

    def test_foreign_patient(self, history_service, patient_repo):
        patient_repo.get_by_id.return_value = Patient(id="p1", dentist_id="d2", first_name="Otro")
        with pytest.raises(PermissionDeniedError):
            history_service.get_history("d1", "p1")

    def test_set_tooth(self, history_service):
        saved = history_service.set_tooth("d1", "p1", "36", "root-canal", "conducto")
        assert saved.odontogram == {"36": {"status": "root-canal", "notes": "conducto"}}

    def test_set_tooth_rejects_unknown_status(self, history_service):
        with pytest.raises(ValidationError):
            history_service.set_tooth("d1", "p1", "36", "broken")

    def test_budget_payments_and_summary(self, history_service, history_repo):
        history_repo.get_by_patient.return_value = MedicalHistory(
            id="h1", patient_id="p1", dentist_id="d1", budget_amount=500
        )
        saved = history_service.add_budget_payment("d1", "p1", NOW, "Endodoncia", 200)
        assert len(saved.budget_payments) == 1
        assert len(saved.budget_payments[0].id) == 32

        history_repo.get_by_patient.return_value = saved
        summary = history_service.budget_summary("d1", "p1")
        assert (summary.budget_amount, summary.total_paid, summary.remaining) == (500, 200, 300)

    def test_budget_payment_requires_history(self, history_service):
        with pytest.raises(NotFoundError):
            history_service.add_budget_payment("d1", "p1", NOW, "Endodoncia", 200)

    def test_remove_unknown_budget_payment(self, history_service, history_repo):
        history_repo.get_by_patient.return_value = MedicalHistory(id="h1", patient_id="p1", dentist_id="d1")
        with pytest.raises(NotFoundError):
            history_service.remove_budget_payment("d1", "p1", "missing")

    def test_summary_without_history_is_zero(self, history_service):
        summary = history_service.budget_summary("d1", "p1")
        assert summary.remaining == 0


@pytest.fixture
def visit_repos(patient_repo):
    visits = VisitRepositoryFactory.create_mock_full()
    appointments = AppointmentRepositoryFactory.create_mock_full()
    appointments.get_by_id.return_value = Appointment(
        id="a1", dentist_id="d1", patient_id="p1", date=NOW, type="consultation"
    )
    return visits, appointments


@pytest.fixture
def visit_service(visit_repos, patient_repo) -> VisitService:
    visits, appointments = visit_repos
    return VisitService(visits, patient_repo, appointments, clock=lambda: NOW)


@pytest.mark.unit
class TestVisits:
    def test_add_visit_linked_to_appointment(self, visit_service):
        visit = visit_service.add_visit("d1", Visit(patient_id="p1", visit_date=NOW, appointment_id="a1"))
        assert visit.id == "visit-1"
        assert visit.dentist_id == "d1"

    def test_one_visit_per_appointment(self, visit_service, visit_repos):
        visits, _ = visit_repos
        visits.get_by_appointment.return_value = Visit(
            id="v0", dentist_id="d1", patient_id="p1", visit_date=NOW, appointment_id="a1"
        )
        with pytest.raises(ValidationError) as exc:
            visit_service.add_visit("d1", Visit(patient_id="p1", visit_date=NOW, appointment_id="a1"))
        assert exc.value.field == "appointment_id"
        visits.add.assert_not_called()

    def test_updating_the_linked_visit_itself_is_allowed(self, visit_service, visit_repos):
        visits, _ = visit_repos
        existing = Visit(id="v0", dentist_id="d1", patient_id="p1", visit_date=NOW, appointment_id=None)
        visits.get_by_id.return_value = existing
        visits.get_by_appointment.return_value = None

        updated = visit_service.update_visit("d1", "v0", {"appointment_id": "a1", "diagnosis": "Caries 36"})

        assert updated.appointment_id == "a1"
        assert updated.diagnosis == "Caries 36"

    def test_foreign_appointment(self, visit_service, visit_repos):
        _, appointments = visit_repos
        appointments.get_by_id.return_value = Appointment(
            id="a1", dentist_id="d2", patient_id="p1", date=NOW, type="consultation"
        )
        with pytest.raises(PermissionDeniedError):
            visit_service.add_visit("d1", Visit(patient_id="p1", visit_date=NOW, appointment_id="a1"))
