# Controllers package initialization
# This file makes the controllers directory a Python package
# and allows importing controller modules

from . import (
    admin_controller,
    appointment_controller,
    auth_controller,
    backup_controller,
    finance_controller,
    health_controller,
    medical_history_controller,
    patient_controller,
    stock_controller,
    subscription_controller,
    visit_controller,
)

__all__ = [
    "admin_controller",
    "appointment_controller",
    "auth_controller",
    "backup_controller",
    "finance_controller",
    "health_controller",
    "medical_history_controller",
    "patient_controller",
    "stock_controller",
    "subscription_controller",
    "visit_controller",
]
