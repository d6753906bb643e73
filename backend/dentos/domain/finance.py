"""
Financial aggregation over a dentist's transactions.

All functions are pure: the caller fetches the tenant's transactions and
passes them in together with the clock and timezone.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from dentos.domain.entities import Patient, Transaction
from dentos.utils.date_utils import ensure_utc, is_in_month, to_app_tz, whole_days_since

OVERDUE_AFTER_DAYS = 10
MONTHLY_FEE_CATEGORY = "mensualidad"

# appointment type -> (transaction category, concept label)
APPOINTMENT_INCOME_CATEGORIES: Dict[str, Tuple[str, str]] = {
    "consultation": ("consulta", "Consulta"),
    "cleaning": ("limpieza", "Limpieza"),
    "treatment": ("tratamiento", "Tratamiento"),
    "emergency": ("otro", "Emergencia"),
    "other": ("otro", "Servicio"),
}


@dataclass
class MonthlyBalance:
    year: int
    month: int
    net_income: float = 0.0
    possible_income: float = 0.0
    gross_income: float = 0.0
    expenses: float = 0.0
    balance: float = 0.0
    transaction_count: int = 0


@dataclass
class PatientPaymentSummary:
    total_paid: float = 0.0
    total_pending: float = 0.0
    overdue: List[Transaction] = field(default_factory=list)

    @property
    def has_overdue(self) -> bool:
        return bool(self.overdue)


def filter_month(
    transactions: Iterable[Transaction], year: int, month: int, tz: Optional[ZoneInfo] = None
) -> List[Transaction]:
    """Transactions whose date falls in ``month`` (1-12) of ``year``."""
    return [t for t in transactions if is_in_month(t.date, year, month, tz)]


def sort_recent_first(transactions: Iterable[Transaction]) -> List[Transaction]:
    return sorted(transactions, key=lambda t: ensure_utc(t.date), reverse=True)


def summarize(transactions: Iterable[Transaction]) -> Tuple[float, float, float]:
    """Return ``(net_income, possible_income, expenses)``.

    The possible-income flag dominates status, and pending income that is not
    possible is left out of every total.
    """
    net_income = 0.0
    possible_income = 0.0
    expenses = 0.0
    for t in transactions:
        if t.type == "income":
            if t.is_possible is True:
                possible_income += t.amount
            elif t.status == "paid":
                net_income += t.amount
        elif t.type == "expense" and t.status == "paid":
            expenses += t.amount
    return net_income, possible_income, expenses


def calculate_monthly_balance(
    transactions: Iterable[Transaction], year: int, month: int, tz: Optional[ZoneInfo] = None
) -> MonthlyBalance:
    in_month = filter_month(transactions, year, month, tz)
    net_income, possible_income, expenses = summarize(in_month)
    return MonthlyBalance(
        year=year,
        month=month,
        net_income=net_income,
        possible_income=possible_income,
        gross_income=net_income + possible_income,
        expenses=expenses,
        balance=net_income - expenses,
        transaction_count=len(in_month),
    )


def is_overdue(transaction: Transaction, now: datetime) -> bool:
    """Pending appointment charges become overdue after ten whole days."""
    if transaction.status != "pending" or not transaction.appointment_id:
        return False
    if transaction.date is None:
        return False
    return whole_days_since(transaction.date, now) > OVERDUE_AFTER_DAYS


def summarize_patient_payments(
    transactions: Iterable[Transaction], now: datetime
) -> PatientPaymentSummary:
    summary = PatientPaymentSummary()
    for t in transactions:
        if t.status == "paid":
            summary.total_paid += t.amount
        elif t.status == "pending":
            summary.total_pending += t.amount
        if is_overdue(t, now):
            summary.overdue.append(t)
    return summary


def income_category_for(appointment_type: str) -> Tuple[str, str]:
    """Ledger category and concept label used when charging an appointment."""
    return APPOINTMENT_INCOME_CATEGORIES.get(appointment_type, ("otro", "Servicio"))


def appointment_concept(appointment_type: str, patient: Patient) -> str:
    _, label = income_category_for(appointment_type)
    return f"{label} - {patient.first_name} {patient.last_name}"


def is_monthly_fee_due(patient: Patient, now: datetime, tz: Optional[ZoneInfo] = None) -> bool:
    """A group patient owes the fee until a payment is stamped this month."""
    if patient.last_monthly_payment is None:
        return True
    local_now = to_app_tz(now, tz)
    return not is_in_month(patient.last_monthly_payment, local_now.year, local_now.month, tz)
