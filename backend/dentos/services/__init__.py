# Services package initialization
# This file makes the services directory a Python package
# and allows importing service modules

from . import appointment_service
from . import auth_service
from . import backup_service
from . import material_service
from . import medical_history_service
from . import patient_service
from . import stock_service
from . import subscription_service
from . import transaction_service
from . import visit_service

__all__ = [
    "appointment_service",
    "auth_service",
    "backup_service",
    "material_service",
    "medical_history_service",
    "patient_service",
    "stock_service",
    "subscription_service",
    "transaction_service",
    "visit_service",
]
