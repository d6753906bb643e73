"""
Unit tests for the monthly balance, patient payment summary and monthly fee
rules of ``dentos.domain.finance``.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from dentos.domain import finance
from dentos.domain.entities import Patient, Transaction

UTC = timezone.utc


def txn(amount, type="income", status="paid", is_possible=None, when=None, **kwargs):
    return Transaction(
        dentist_id="d1",
        type=type,
        amount=amount,
        category="consulta",
        concept="Consulta",
        date=when or datetime(2025, 3, 5, 15, 0, tzinfo=UTC),
        status=status,
        is_possible=is_possible,
        **kwargs,
    )


@pytest.mark.unit
class TestMonthlyBalance:
    def test_paid_income_and_possible_income(self):
        balance = finance.calculate_monthly_balance(
            [txn(100), txn(50, status="pending", is_possible=True)], 2025, 3
        )
        assert balance.net_income == 100
        assert balance.possible_income == 50
        assert balance.gross_income == 150
        assert balance.expenses == 0
        assert balance.balance == 100
        assert balance.transaction_count == 2

    def test_possible_flag_dominates_status(self):
        balance = finance.calculate_monthly_balance([txn(80, status="paid", is_possible=True)], 2025, 3)
        assert balance.net_income == 0
        assert balance.possible_income == 80

    def test_pending_non_possible_income_is_excluded(self):
        balance = finance.calculate_monthly_balance([txn(70, status="pending")], 2025, 3)
        assert balance.net_income == 0
        assert balance.possible_income == 0
        assert balance.gross_income == 0
        assert balance.transaction_count == 1

    def test_only_paid_expenses_count(self):
        balance = finance.calculate_monthly_balance(
            [txn(200), txn(30, type="expense"), txn(45, type="expense", status="pending")],
            2025,
            3,
        )
        assert balance.expenses == 30
        assert balance.balance == 170

    def test_other_months_are_ignored(self):
        balance = finance.calculate_monthly_balance(
            [txn(100), txn(999, when=datetime(2025, 4, 1, 0, 0, tzinfo=UTC))], 2025, 3
        )
        assert balance.net_income == 100
        assert balance.transaction_count == 1

    def test_month_boundaries_follow_the_application_timezone(self):
        # 1 April 02:00 UTC is still 31 March in Buenos Aires (UTC-3)
        tz = ZoneInfo("America/Argentina/Buenos_Aires")
        late = txn(60, when=datetime(2025, 4, 1, 2, 0, tzinfo=UTC))
        assert finance.calculate_monthly_balance([late], 2025, 3, tz).net_income == 60
        assert finance.calculate_monthly_balance([late], 2025, 4, tz).net_income == 0


@pytest.mark.unit
def test_sort_recent_first():
    older = txn(10, when=datetime(2025, 3, 1, tzinfo=UTC))
    newer = txn(20, when=datetime(2025, 3, 20, tzinfo=UTC))
    assert finance.sort_recent_first([older, newer]) == [newer, older]


@pytest.mark.unit
class TestPatientPayments:
    NOW = datetime(2025, 3, 20, 12, 0, tzinfo=UTC)

    def test_totals_by_status(self):
        summary = finance.summarize_patient_payments(
            [txn(100), txn(40, status="pending"), txn(10, status="partial")], self.NOW
        )
        assert summary.total_paid == 100
        assert summary.total_pending == 40
        assert summary.has_overdue is False

    def test_pending_appointment_charge_is_overdue_after_ten_days(self):
        charge = txn(40, status="pending", appointment_id="a1", when=self.NOW - timedelta(days=10, hours=1))
        summary = finance.summarize_patient_payments([charge], self.NOW)
        assert summary.overdue == [charge]
        assert summary.has_overdue is True

    def test_exactly_ten_days_is_not_overdue(self):
        charge = txn(40, status="pending", appointment_id="a1", when=self.NOW - timedelta(days=10))
        assert finance.is_overdue(charge, self.NOW) is False

    def test_pending_without_appointment_is_never_overdue(self):
        charge = txn(40, status="pending", when=self.NOW - timedelta(days=60))
        assert finance.is_overdue(charge, self.NOW) is False


@pytest.mark.unit
class TestAppointmentIncome:
    def test_category_and_concept_by_type(self):
        patient = Patient(first_name="Juan", last_name="Gomez")
        assert finance.income_category_for("cleaning") == ("limpieza", "Limpieza")
        assert finance.appointment_concept("consultation", patient) == "Consulta - Juan Gomez"

    def test_unknown_type_falls_back_to_other(self):
        assert finance.income_category_for("whitening") == ("otro", "Servicio")


@pytest.mark.unit
class TestMonthlyFeeDue:
    NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)

    def test_never_paid_is_due(self):
        patient = Patient(first_name="Leo", group_name="Equipo", monthly_price=30, date_of_birth=date(2010, 1, 1))
        assert finance.is_monthly_fee_due(patient, self.NOW) is True

    def test_paid_this_month_is_not_due(self):
        patient = Patient(first_name="Leo", monthly_price=30, last_monthly_payment=datetime(2025, 3, 1, tzinfo=UTC))
        assert finance.is_monthly_fee_due(patient, self.NOW) is False

    def test_paid_last_month_is_due(self):
        patient = Patient(first_name="Leo", monthly_price=30, last_monthly_payment=datetime(2025, 2, 28, tzinfo=UTC))
        assert finance.is_monthly_fee_due(patient, self.NOW) is True
