"""
Domain entities - Pure business records, no framework dependencies.

Every tenant-owned record carries ``dentist_id``. Ids are UUID4 strings
assigned by the store; timestamps are aware UTC datetimes.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

SUBSCRIPTION_STATUSES = ("trial", "active", "expired", "cancelled")
PLAN_TYPES = ("monthly", "annual")
APPOINTMENT_TYPES = ("consultation", "cleaning", "treatment", "emergency", "other")
APPOINTMENT_STATUSES = ("scheduled", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("paid", "pending", "partial")
TRANSACTION_TYPES = ("income", "expense")
PAYMENT_METHODS = ("cash", "card", "transfer", "other")
STOCK_CATEGORIES = ("material", "instrument", "medication", "consumable", "other")


@dataclass
class AuthIdentity:
    """Authenticated account as seen by the session layer.

    Implements the attributes Flask-Login expects from a user object.
    """

    uid: str
    email: str
    display_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_active(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    def get_id(self) -> str:
        return self.uid


@dataclass
class DentistProfile:
    """Dentist account profile plus its subscription state."""

    uid: str = ""
    email: str = ""
    display_name: str = ""
    license_number: str = ""
    specialization: Optional[str] = None
    phone: Optional[str] = None
    clinic_name: Optional[str] = None
    clinic_address: Optional[str] = None
    subscription_status: str = "trial"
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    plan_type: Optional[str] = None
    last_payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.subscription_status not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"Invalid subscription status: {self.subscription_status}")
        if self.plan_type is not None and self.plan_type not in PLAN_TYPES:
            raise ValueError(f"Invalid plan type: {self.plan_type}")


@dataclass
class Patient:
    dentist_id: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    date_of_birth: Optional[date] = None
    email: Optional[str] = None
    address: Optional[str] = None
    medical_notes: Optional[str] = None
    group_name: Optional[str] = None
    monthly_price: Optional[float] = None
    last_monthly_payment: Optional[datetime] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        # Group members are registered with a first name only
        if not self.first_name:
            raise ValueError("Patient first name is required")
        if self.monthly_price is not None and self.monthly_price < 0:
            raise ValueError("Monthly price cannot be negative")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Appointment:
    """Scheduled visit of a patient."""

    dentist_id: str = ""
    patient_id: str = ""
    date: Optional[datetime] = None
    duration: int = 30  # minutes
    type: str = "consultation"
    status: str = "scheduled"
    notes: Optional[str] = None
    price: Optional[float] = None
    payment_status: Optional[str] = None
    # Weak back-reference to the income transaction, lookup only
    transaction_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.type not in APPOINTMENT_TYPES:
            raise ValueError(f"Invalid appointment type: {self.type}")
        if self.status not in APPOINTMENT_STATUSES:
            raise ValueError(f"Invalid appointment status: {self.status}")
        if self.payment_status is not None and self.payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"Invalid payment status: {self.payment_status}")
        if self.duration <= 0:
            raise ValueError("Duration must be positive")
        if self.price is not None and self.price < 0:
            raise ValueError("Price cannot be negative")


@dataclass
class Transaction:
    """Income or expense entry of the clinic ledger."""

    dentist_id: str = ""
    type: str = "income"
    amount: float = 0.0
    category: str = ""
    concept: str = ""
    date: Optional[datetime] = None
    payment_method: str = "cash"
    status: str = "paid"
    # Speculative income, tracked but excluded from net totals
    is_possible: Optional[bool] = None
    patient_id: Optional[str] = None
    appointment_id: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.type not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid transaction type: {self.type}")
        if self.status not in PAYMENT_STATUSES:
            raise ValueError(f"Invalid transaction status: {self.status}")
        if self.payment_method not in PAYMENT_METHODS:
            raise ValueError(f"Invalid payment method: {self.payment_method}")
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")


@dataclass
class StockItem:
    """Inventory item of the clinic."""

    dentist_id: str = ""
    name: str = ""
    category: str = "material"
    quantity: float = 0
    unit: str = ""
    min_quantity: float = 0
    location: Optional[str] = None
    supplier: Optional[str] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    expiration_date: Optional[date] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.category not in STOCK_CATEGORIES:
            raise ValueError(f"Invalid stock category: {self.category}")
        if self.quantity < 0:
            raise ValueError("Quantity cannot be negative")
        if self.min_quantity < 0:
            raise ValueError("Minimum quantity cannot be negative")

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.min_quantity


@dataclass
class AppointmentMaterial:
    """Snapshot of a stock item consumed during an appointment."""

    appointment_id: str = ""
    stock_item_id: str = ""
    stock_item_name: str = ""
    category: str = "material"
    unit: str = ""
    quantity_used: float = 0
    cost: Optional[float] = None
    registered_at: Optional[datetime] = None
    id: Optional[str] = None

    def __post_init__(self):
        if self.quantity_used <= 0:
            raise ValueError("Quantity used must be positive")

    @property
    def total_cost(self) -> Optional[float]:
        if self.cost is None:
            return None
        return self.cost * self.quantity_used


@dataclass
class BudgetPayment:
    id: str = ""
    date: Optional[datetime] = None
    treatment: str = ""
    amount: float = 0.0


@dataclass
class MedicalHistory:
    """Clinical record of a patient: anamnesis, odontogram and treatment plan."""

    patient_id: str = ""
    dentist_id: str = ""
    chief_complaint: Optional[str] = None
    current_illness: Optional[str] = None
    allergies: List[str] = field(default_factory=list)
    current_medications: List[str] = field(default_factory=list)
    systemic_diseases: List[str] = field(default_factory=list)
    previous_surgeries: Optional[str] = None
    family_history: Optional[str] = None
    smoking_habit: Optional[str] = None
    alcohol_consumption: Optional[str] = None
    bruxism: Optional[bool] = None
    other_habits: Optional[str] = None
    extraoral_exam: Optional[str] = None
    intraoral_exam: Optional[str] = None
    # tooth id -> {"status": ..., "notes": ...}
    odontogram: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    periodontal_indices: Dict[str, float] = field(default_factory=dict)
    presumptive_diagnosis: Optional[str] = None
    definitive_diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    prognosis: Optional[str] = None
    budget_amount: Optional[float] = None
    budget_payments: List[BudgetPayment] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Visit:
    """Clinical evolution note of a single visit."""

    dentist_id: str = ""
    patient_id: str = ""
    visit_date: Optional[datetime] = None
    appointment_id: Optional[str] = None
    chief_complaint: Optional[str] = None
    symptoms: Optional[str] = None
    treatments_performed: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    diagnosis: Optional[str] = None
    prescriptions: List[str] = field(default_factory=list)
    next_appointment_suggestion: Optional[str] = None
    attachments: List[str] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
