"""
Domain package - Pure business logic layer.

This package contains:
- entities.py: Domain records
- interfaces.py: Repository and auth provider contracts
- subscription.py: Subscription lifecycle and access gating
- finance.py: Monthly balance and payment aggregation
"""

from .entities import (
    Appointment,
    AppointmentMaterial,
    AuthIdentity,
    BudgetPayment,
    DentistProfile,
    MedicalHistory,
    Patient,
    StockItem,
    Transaction,
    Visit,
)
from .interfaces import (
    IAppointmentMaterialRepository,
    IAppointmentRepository,
    IAuthProvider,
    IDentistProfileRepository,
    IMedicalHistoryRepository,
    IPatientRepository,
    IStockRepository,
    ITransactionRepository,
    IVisitRepository,
)

__all__ = [
    # Domain entities
    "Appointment",
    "AppointmentMaterial",
    "AuthIdentity",
    "BudgetPayment",
    "DentistProfile",
    "MedicalHistory",
    "Patient",
    "StockItem",
    "Transaction",
    "Visit",
    # Gateway interfaces
    "IAppointmentMaterialRepository",
    "IAppointmentRepository",
    "IAuthProvider",
    "IDentistProfileRepository",
    "IMedicalHistoryRepository",
    "IPatientRepository",
    "IStockRepository",
    "ITransactionRepository",
    "IVisitRepository",
]
