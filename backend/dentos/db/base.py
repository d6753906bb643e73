from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from dentos.utils.date_utils import utcnow

from .session import Base


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class AuthAccount(TimestampMixin, Base):
    """Local email/password credentials."""

    __tablename__ = "auth_accounts"

    uid: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(200))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)


class DentistProfile(TimestampMixin, Base):
    """Dentist profile and subscription state, keyed by the auth uid."""

    __tablename__ = "dentist_profiles"

    uid: Mapped[str] = mapped_column(
        String(36), ForeignKey("auth_accounts.uid", ondelete="CASCADE"), primary_key=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    license_number: Mapped[str] = mapped_column(String(100), nullable=False)
    specialization: Mapped[Optional[str]] = mapped_column(String(200))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    clinic_name: Mapped[Optional[str]] = mapped_column(String(200))
    clinic_address: Mapped[Optional[str]] = mapped_column(String(500))
    # 'trial', 'active', 'expired', 'cancelled'
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False, default="trial")
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    subscription_ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    plan_type: Mapped[Optional[str]] = mapped_column(String(20))  # 'monthly', 'annual'
    last_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Patient(TimestampMixin, Base):
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    dentist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    address: Mapped[Optional[str]] = mapped_column(String(500))
    medical_notes: Mapped[Optional[str]] = mapped_column(Text)
    group_name: Mapped[Optional[str]] = mapped_column(String(200), index=True)
    monthly_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    last_monthly_payment: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class Appointment(TimestampMixin, Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    dentist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    patient_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    payment_status: Mapped[Optional[str]] = mapped_column(String(20))
    # Weak reference: no foreign key, the transaction may be deleted independently
    transaction_id: Mapped[Optional[str]] = mapped_column(String(36))


class Transaction(TimestampMixin, Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    dentist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # 'income', 'expense'
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    concept: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    is_possible: Mapped[Optional[bool]] = mapped_column(Boolean)
    patient_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    appointment_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class StockItem(TimestampMixin, Base):
    __tablename__ = "stock_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    dentist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    min_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    supplier: Mapped[Optional[str]] = mapped_column(String(200))
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    expiration_date: Mapped[Optional[date]] = mapped_column(Date)


class AppointmentMaterial(Base):
    """Snapshot of a stock item used in an appointment; immutable once created."""

    __tablename__ = "appointment_materials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    appointment_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    stock_item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    stock_item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity_used: Mapped[float] = mapped_column(Float, nullable=False)
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class MedicalHistory(TimestampMixin, Base):
    """One clinical record per patient; structured parts stored as JSON."""

    __tablename__ = "medical_histories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    patient_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    dentist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    chief_complaint: Mapped[Optional[str]] = mapped_column(Text)
    current_illness: Mapped[Optional[str]] = mapped_column(Text)
    allergies: Mapped[Optional[Any]] = mapped_column(JSON)
    current_medications: Mapped[Optional[Any]] = mapped_column(JSON)
    systemic_diseases: Mapped[Optional[Any]] = mapped_column(JSON)
    previous_surgeries: Mapped[Optional[str]] = mapped_column(Text)
    family_history: Mapped[Optional[str]] = mapped_column(Text)
    smoking_habit: Mapped[Optional[str]] = mapped_column(String(20))
    alcohol_consumption: Mapped[Optional[str]] = mapped_column(String(20))
    bruxism: Mapped[Optional[bool]] = mapped_column(Boolean)
    other_habits: Mapped[Optional[str]] = mapped_column(Text)
    extraoral_exam: Mapped[Optional[str]] = mapped_column(Text)
    intraoral_exam: Mapped[Optional[str]] = mapped_column(Text)
    odontogram: Mapped[Optional[Any]] = mapped_column(JSON)
    periodontal_indices: Mapped[Optional[Any]] = mapped_column(JSON)
    presumptive_diagnosis: Mapped[Optional[str]] = mapped_column(Text)
    definitive_diagnosis: Mapped[Optional[str]] = mapped_column(Text)
    treatment_plan: Mapped[Optional[str]] = mapped_column(Text)
    prognosis: Mapped[Optional[str]] = mapped_column(String(20))
    budget_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    budget_payments: Mapped[Optional[Any]] = mapped_column(JSON)


class Visit(TimestampMixin, Base):
    __tablename__ = "visits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    dentist_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    patient_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    appointment_id: Mapped[Optional[str]] = mapped_column(String(36), unique=True, index=True)
    visit_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    chief_complaint: Mapped[Optional[str]] = mapped_column(Text)
    symptoms: Mapped[Optional[str]] = mapped_column(Text)
    treatments_performed: Mapped[Optional[Any]] = mapped_column(JSON)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text)
    prescriptions: Mapped[Optional[Any]] = mapped_column(JSON)
    next_appointment_suggestion: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[Optional[Any]] = mapped_column(JSON)
