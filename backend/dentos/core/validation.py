"""
Common validation utilities for DentOS controllers.

Each entity validator turns a raw JSON payload into ``cleaned_data`` with
typed values, collecting one message per offending field. Validators run in
``partial`` mode for updates: only the keys present in the payload are
checked and cleaned.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from dentos.core.exceptions import ValidationError
from dentos.utils.date_utils import parse_datetime, to_app_tz, utcnow

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(
    r"^[\+]?[(]?[0-9]{1,4}[)]?[-\s\.]?[(]?[0-9]{1,4}[)]?[-\s\.]?[0-9]{1,9}$"
)
NAME_RE = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s]+$")

MAX_PRICE = 1_000_000
MAX_TEXT_LENGTH = 1000
MIN_PASSWORD_LENGTH = 6
MIN_LICENSE_LENGTH = 4
MAX_AGE_YEARS = 150
MAX_APPOINTMENT_YEARS_AHEAD = 2


def sanitize_string(value: str) -> str:
    """Strip markup and script injection fragments from free text."""
    value = value.strip()
    value = re.sub(r"[<>]", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    value = re.sub(r"on\w+=", "", value, flags=re.IGNORECASE)
    return value


class ValidationResult:
    """Container for validation results."""

    def __init__(self):
        self.errors: List[str] = []
        self.field_errors: Dict[str, str] = {}
        self.is_valid: bool = True
        self.cleaned_data: Dict[str, Any] = {}

    def add_error(self, message: str, field: Optional[str] = None):
        """Add validation error. Only the first error per field is kept."""
        if field and field in self.field_errors:
            return
        error_msg = f"{field}: {message}" if field else message
        self.errors.append(error_msg)
        if field:
            self.field_errors[field] = message
        self.is_valid = False
        logger.debug(f"Validation error: {error_msg}")

    def raise_for_errors(self) -> Dict[str, Any]:
        """Raise ValidationError for the first failing field, else return cleaned data."""
        if self.is_valid:
            return self.cleaned_data
        field, message = next(iter(self.field_errors.items()), (None, self.errors[0]))
        raise ValidationError(message, field)


class BaseValidator:
    """Base validator with common validation methods."""

    def __init__(self, partial: bool = False):
        self.partial = partial

    def validate(
        self, data: Dict[str, Any]
    ) -> ValidationResult:  # pragma: no cover - interface definition
        """Validate data for a specific entity type."""
        raise NotImplementedError("Subclasses must implement validate")

    def _wants(self, data: Dict[str, Any], field: str) -> bool:
        """In partial mode a field is checked only when the payload carries it."""
        return not self.partial or field in data

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and value.strip() == "")

    @staticmethod
    def validate_required_field(
        value: Any, field_name: str, result: ValidationResult, message: Optional[str] = None
    ) -> bool:
        """Validate that a required field is present and not empty."""
        if BaseValidator._is_blank(value):
            result.add_error(message or "Este campo es requerido", field_name)
            return False
        return True

    @staticmethod
    def validate_date(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[date]:
        """Validate and convert a calendar date (YYYY-MM-DD)."""
        if BaseValidator._is_blank(value):
            return None

        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        if isinstance(value, str):
            try:
                return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
            except ValueError:
                result.add_error("Fecha inválida. Use formato AAAA-MM-DD", field_name)
                return None

        result.add_error("Fecha inválida", field_name)
        return None

    @staticmethod
    def validate_datetime(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[datetime]:
        """Validate and convert an ISO-8601 instant into aware UTC."""
        if BaseValidator._is_blank(value):
            return None

        if isinstance(value, datetime):
            return parse_datetime(value.isoformat())

        if isinstance(value, str):
            try:
                return parse_datetime(value)
            except ValueError:
                result.add_error("Fecha inválida", field_name)
                return None

        result.add_error("Fecha inválida", field_name)
        return None

    @staticmethod
    def validate_number(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[float] = 0,
        max_value: Optional[float] = None,
        label: str = "valor",
    ) -> Optional[float]:
        """Validate and convert a numeric field (non-negative by default)."""
        if BaseValidator._is_blank(value):
            return None

        if isinstance(value, bool):
            result.add_error(f"El {label} debe ser un número", field_name)
            return None

        try:
            number = float(str(value).strip().replace(",", ".")) if isinstance(value, str) else float(value)
        except (TypeError, ValueError):
            result.add_error(f"El {label} debe ser un número", field_name)
            return None

        if math.isnan(number) or math.isinf(number):
            result.add_error(f"El {label} debe ser un número", field_name)
            return None

        if min_value is not None and number < min_value:
            if min_value == 0:
                result.add_error(f"El {label} no puede ser negativo", field_name)
            else:
                result.add_error(f"El {label} debe ser al menos {min_value:g}", field_name)
            return None

        if max_value is not None and number > max_value:
            result.add_error(f"El {label} no puede ser mayor que {max_value:g}", field_name)
            return None

        return number

    @staticmethod
    def validate_price(
        value: Any, field_name: str, result: ValidationResult, label: str = "precio"
    ) -> Optional[float]:
        """Non-negative amount that does not exceed MAX_PRICE."""
        number = BaseValidator.validate_number(value, field_name, result, label=label)
        if number is not None and number > MAX_PRICE:
            result.add_error(f"El {label} parece demasiado alto", field_name)
            return None
        return number

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
        message: Optional[str] = None,
    ) -> Optional[int]:
        """Validate and convert integer field."""
        if BaseValidator._is_blank(value):
            return None

        try:
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(value)
            int_value = int(value)
        except (ValueError, TypeError):
            result.add_error(message or "El valor debe ser un número entero", field_name)
            return None

        if min_value is not None and int_value < min_value:
            result.add_error(message or f"El valor debe ser al menos {min_value}", field_name)
            return None

        if max_value is not None and int_value > max_value:
            result.add_error(message or f"El valor no puede ser mayor que {max_value}", field_name)
            return None

        return int_value

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        allowed_values: Optional[List[str]] = None,
        sanitize: bool = False,
    ) -> Optional[str]:
        """Validate string field."""
        if value is None:
            return None

        if not isinstance(value, str):
            value = str(value)

        value = value.strip()
        if not value:
            return None

        if min_length is not None and len(value) < min_length:
            result.add_error(f"Debe tener al menos {min_length} caracteres", field_name)
            return None

        if max_length is not None and len(value) > max_length:
            result.add_error(f"El texto no puede exceder {max_length} caracteres", field_name)
            return None

        if allowed_values is not None and value not in allowed_values:
            result.add_error(
                f"El valor debe ser uno de: {', '.join(allowed_values)}", field_name
            )
            return None

        return sanitize_string(value) if sanitize else value

    @staticmethod
    def validate_text(
        value: Any, field_name: str, result: ValidationResult, max_length: int = MAX_TEXT_LENGTH
    ) -> Optional[str]:
        """Free text: trimmed, length-capped and sanitized."""
        return BaseValidator.validate_string(
            value, field_name, result, max_length=max_length, sanitize=True
        )

    @staticmethod
    def validate_email(value: Any, field_name: str, result: ValidationResult) -> Optional[str]:
        if BaseValidator._is_blank(value):
            result.add_error("El email es requerido", field_name)
            return None
        email = str(value).strip()
        if not EMAIL_RE.match(email):
            result.add_error("Email inválido", field_name)
            return None
        return email.lower()

    @staticmethod
    def validate_phone(value: Any, field_name: str, result: ValidationResult) -> Optional[str]:
        if BaseValidator._is_blank(value):
            result.add_error("El teléfono es requerido", field_name)
            return None
        phone = str(value).strip()
        if not PHONE_RE.match(phone):
            result.add_error("Teléfono inválido", field_name)
            return None
        return phone

    @staticmethod
    def validate_password(value: Any, field_name: str, result: ValidationResult) -> Optional[str]:
        if not value:
            result.add_error("La contraseña es requerida", field_name)
            return None
        if len(str(value)) < MIN_PASSWORD_LENGTH:
            result.add_error(
                f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres", field_name
            )
            return None
        return str(value)

    @staticmethod
    def validate_name(
        value: Any, field_name: str, result: ValidationResult, label: str = "nombre"
    ) -> Optional[str]:
        if BaseValidator._is_blank(value):
            result.add_error(f"El {label} es requerido", field_name)
            return None
        name = str(value).strip()
        if len(name) < 2:
            result.add_error(f"El {label} debe tener al menos 2 caracteres", field_name)
            return None
        if not NAME_RE.match(name):
            result.add_error(f"El {label} solo puede contener letras", field_name)
            return None
        return name

    @staticmethod
    def validate_license_number(value: Any, field_name: str, result: ValidationResult) -> Optional[str]:
        if BaseValidator._is_blank(value):
            result.add_error("El número de licencia es requerido", field_name)
            return None
        license_number = str(value).strip()
        if len(license_number) < MIN_LICENSE_LENGTH:
            result.add_error(
                f"El número de licencia debe tener al menos {MIN_LICENSE_LENGTH} caracteres",
                field_name,
            )
            return None
        return license_number

    @staticmethod
    def validate_date_of_birth(
        value: Any, field_name: str, result: ValidationResult, today: Optional[date] = None
    ) -> Optional[date]:
        if BaseValidator._is_blank(value):
            result.add_error("La fecha de nacimiento es requerida", field_name)
            return None
        born = BaseValidator.validate_date(value, field_name, result)
        if born is None:
            return None
        current = today or to_app_tz(utcnow()).date()
        if born > current:
            result.add_error("La fecha no puede ser futura", field_name)
            return None
        if current.year - born.year > MAX_AGE_YEARS:
            result.add_error("La fecha parece incorrecta", field_name)
            return None
        return born

    @staticmethod
    def validate_appointment_date(
        value: Any, field_name: str, result: ValidationResult, now: Optional[datetime] = None
    ) -> Optional[datetime]:
        """Appointment instant from the start of today up to two years ahead."""
        if BaseValidator._is_blank(value):
            result.add_error("La fecha es requerida", field_name)
            return None
        when = BaseValidator.validate_datetime(value, field_name, result)
        if when is None:
            return None
        current = now or utcnow()
        local_now = to_app_tz(current)
        start_of_today = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            max_date = local_now.replace(year=local_now.year + MAX_APPOINTMENT_YEARS_AHEAD)
        except ValueError:
            # 29 February
            max_date = local_now.replace(
                year=local_now.year + MAX_APPOINTMENT_YEARS_AHEAD, day=28
            )
        if when < start_of_today:
            result.add_error("La fecha no puede ser en el pasado", field_name)
            return None
        if when > max_date:
            result.add_error("La fecha está demasiado lejos en el futuro", field_name)
            return None
        return when

    @staticmethod
    def validate_choice(
        value: Any, field_name: str, result: ValidationResult, choices: List[str]
    ) -> Optional[str]:
        if BaseValidator._is_blank(value):
            return None
        choice = str(value).strip()
        if choice not in choices:
            result.add_error(f"El valor debe ser uno de: {', '.join(choices)}", field_name)
            return None
        return choice

    @staticmethod
    def validate_boolean(value: Any, field_name: str, result: ValidationResult) -> Optional[bool]:
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "si", "sí"):
            return True
        if isinstance(value, str) and value.strip().lower() in ("false", "0", "no"):
            return False
        result.add_error("El valor debe ser verdadero o falso", field_name)
        return None

    @staticmethod
    def validate_string_list(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            value = [part for part in value.split(",")]
        if not isinstance(value, list):
            result.add_error("Debe ser una lista de textos", field_name)
            return None
        cleaned = [sanitize_string(str(item)) for item in value if str(item).strip()]
        return cleaned

    # Helpers used by the entity validators below

    def _required(self, data, field, result, check, *args, **kwargs):
        """Run ``check`` on a required field; absent fields are skipped in partial mode."""
        if not self._wants(data, field):
            return
        value = check(data.get(field), field, result, *args, **kwargs)
        if value is not None:
            result.cleaned_data[field] = value
        elif field not in result.field_errors:
            self.validate_required_field(data.get(field), field, result)

    def _optional(self, data, field, result, check, *args, **kwargs):
        """Run ``check`` on an optional field; blank values clear it."""
        if field not in data:
            return
        raw = data.get(field)
        if self._is_blank(raw):
            result.cleaned_data[field] = None
            return
        value = check(raw, field, result, *args, **kwargs)
        if field not in result.field_errors:
            result.cleaned_data[field] = value


class ProfileValidator(BaseValidator):
    """Validator for the editable (non-subscription) dentist profile fields."""

    def __init__(self, partial: bool = True):
        super().__init__(partial=partial)

    def validate_profile(self, data: Dict[str, Any], result: ValidationResult) -> None:
        self._required(data, "display_name", result, self.validate_name)
        self._required(data, "license_number", result, self.validate_license_number)
        self._optional(data, "specialization", result, self.validate_string, max_length=200, sanitize=True)
        self._optional(data, "phone", result, self.validate_phone)
        self._optional(data, "clinic_name", result, self.validate_string, max_length=200, sanitize=True)
        self._optional(data, "clinic_address", result, self.validate_text, max_length=500)

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self.validate_profile(data, result)
        return result


class RegistrationValidator(ProfileValidator):
    """Validator for dentist sign-up: credentials plus the profile."""

    def __init__(self):
        super().__init__(partial=False)

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "email", result, self.validate_email)
        self._required(data, "password", result, self.validate_password)
        self.validate_profile(data, result)
        return result


class PatientValidator(BaseValidator):
    """Validator for patient records."""

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "first_name", result, self.validate_name, label="nombre")
        self._required(data, "last_name", result, self.validate_name, label="apellido")
        self._required(data, "phone", result, self.validate_phone)
        self._required(data, "date_of_birth", result, self.validate_date_of_birth)
        self._optional(data, "email", result, self.validate_email)
        self._optional(data, "address", result, self.validate_text, max_length=500)
        self._optional(data, "medical_notes", result, self.validate_text)
        self._optional(data, "group_name", result, self.validate_string, max_length=200, sanitize=True)
        self._optional(data, "monthly_price", result, self.validate_price)
        return result


class AppointmentValidator(BaseValidator):
    """Validator for appointments.

    New appointments must be scheduled from today up to two years ahead;
    updates accept any valid instant so past visits can be edited.
    """

    TYPES = ["consultation", "cleaning", "treatment", "emergency", "other"]
    STATUSES = ["scheduled", "confirmed", "completed", "cancelled"]
    PAYMENT_STATUSES = ["paid", "pending", "partial"]

    def __init__(self, partial: bool = False, now: Optional[datetime] = None):
        super().__init__(partial)
        self.now = now

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "patient_id", result, self.validate_string, max_length=64)
        if self.partial:
            self._required(data, "date", result, self.validate_datetime)
        else:
            self._required(data, "date", result, self.validate_appointment_date, now=self.now)
        self._required(
            data, "duration", result, self.validate_integer,
            min_value=15, max_value=480,
            message="La duración debe ser entre 15 y 480 minutos",
        )
        self._required(data, "type", result, self.validate_choice, self.TYPES)
        if self._wants(data, "status"):
            status = self.validate_choice(data.get("status"), "status", result, self.STATUSES)
            if status or not self.partial:
                result.cleaned_data["status"] = status or "scheduled"
        self._optional(data, "notes", result, self.validate_text)
        self._optional(data, "price", result, self.validate_price)
        self._optional(data, "payment_status", result, self.validate_choice, self.PAYMENT_STATUSES)
        return result


class TransactionValidator(BaseValidator):
    """Validator for income/expense transactions."""

    TYPES = ["income", "expense"]
    PAYMENT_METHODS = ["cash", "card", "transfer", "other"]
    STATUSES = ["paid", "pending", "partial"]

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "type", result, self.validate_choice, self.TYPES)
        self._required(data, "amount", result, self.validate_price, label="monto")
        self._required(data, "category", result, self.validate_string, max_length=100, sanitize=True)
        self._required(data, "concept", result, self.validate_string, max_length=200, sanitize=True)
        self._required(data, "date", result, self.validate_datetime)
        self._required(data, "payment_method", result, self.validate_choice, self.PAYMENT_METHODS)
        self._required(data, "status", result, self.validate_choice, self.STATUSES)
        self._optional(data, "is_possible", result, self.validate_boolean)
        self._optional(data, "patient_id", result, self.validate_string, max_length=64)
        self._optional(data, "appointment_id", result, self.validate_string, max_length=64)
        self._optional(data, "notes", result, self.validate_text)
        return result


class StockItemValidator(BaseValidator):
    """Validator for inventory items."""

    CATEGORIES = ["material", "instrument", "medication", "consumable", "other"]

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "name", result, self.validate_string, min_length=2, max_length=200, sanitize=True)
        self._required(data, "category", result, self.validate_choice, self.CATEGORIES)
        self._required(data, "quantity", result, self.validate_number, label="cantidad")
        self._required(data, "unit", result, self.validate_string, max_length=50, sanitize=True)
        self._required(data, "min_quantity", result, self.validate_number, label="cantidad mínima")
        self._optional(data, "location", result, self.validate_string, max_length=200, sanitize=True)
        self._optional(data, "supplier", result, self.validate_string, max_length=200, sanitize=True)
        self._optional(data, "cost", result, self.validate_price)
        self._optional(data, "notes", result, self.validate_text)
        self._optional(data, "expiration_date", result, self.validate_date)
        return result


class VisitValidator(BaseValidator):
    """Validator for clinical visit notes."""

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "patient_id", result, self.validate_string, max_length=64)
        self._required(data, "visit_date", result, self.validate_datetime)
        self._optional(data, "appointment_id", result, self.validate_string, max_length=64)
        for field in ("chief_complaint", "symptoms", "notes", "diagnosis", "next_appointment_suggestion"):
            self._optional(data, field, result, self.validate_text)
        for field in ("treatments_performed", "prescriptions", "attachments"):
            self._optional(data, field, result, self.validate_string_list)
            if field in result.cleaned_data and result.cleaned_data[field] is None:
                result.cleaned_data[field] = []
        return result


class MedicalHistoryValidator(BaseValidator):
    """Validator for the anamnesis, odontogram and treatment plan document."""

    HABIT_LEVELS = ["no", "occasional", "frequent", "heavy"]
    TOOTH_STATUSES = ["healthy", "caries", "filling", "crown", "missing", "implant", "root-canal", "other"]
    PROGNOSES = ["excellent", "good", "fair", "poor", "hopeless"]
    PERIODONTAL_INDICES = ["plaque", "gingival", "bleeding"]
    TEXT_FIELDS = [
        "chief_complaint",
        "current_illness",
        "previous_surgeries",
        "family_history",
        "other_habits",
        "extraoral_exam",
        "intraoral_exam",
        "presumptive_diagnosis",
        "definitive_diagnosis",
        "treatment_plan",
    ]
    LIST_FIELDS = ["allergies", "current_medications", "systemic_diseases"]

    def __init__(self):
        super().__init__(partial=True)

    def validate_tooth(self, tooth: Any, entry: Any, result: ValidationResult) -> Optional[Dict[str, Any]]:
        field = f"odontogram.{tooth}"
        if not isinstance(entry, dict):
            result.add_error("Cada diente debe tener un estado", field)
            return None
        status = self.validate_choice(entry.get("status"), field, result, self.TOOTH_STATUSES)
        if status is None:
            self.validate_required_field(entry.get("status"), field, result)
            return None
        cleaned: Dict[str, Any] = {"status": status}
        notes = self.validate_text(entry.get("notes"), field, result, max_length=500)
        if notes:
            cleaned["notes"] = notes
        return cleaned

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        for field in self.TEXT_FIELDS:
            self._optional(data, field, result, self.validate_text, max_length=5000)
        for field in self.LIST_FIELDS:
            self._optional(data, field, result, self.validate_string_list)
            if field in result.cleaned_data and result.cleaned_data[field] is None:
                result.cleaned_data[field] = []
        self._optional(data, "smoking_habit", result, self.validate_choice, self.HABIT_LEVELS)
        self._optional(data, "alcohol_consumption", result, self.validate_choice, self.HABIT_LEVELS)
        self._optional(data, "bruxism", result, self.validate_boolean)
        self._optional(data, "prognosis", result, self.validate_choice, self.PROGNOSES)
        self._optional(data, "budget_amount", result, self.validate_price, label="presupuesto")

        if "odontogram" in data and data["odontogram"] is not None:
            odontogram = data["odontogram"]
            if not isinstance(odontogram, dict):
                result.add_error("El odontograma debe ser un objeto", "odontogram")
            else:
                cleaned_teeth = {}
                for tooth, entry in odontogram.items():
                    cleaned = self.validate_tooth(tooth, entry, result)
                    if cleaned is not None:
                        cleaned_teeth[str(tooth)] = cleaned
                result.cleaned_data["odontogram"] = cleaned_teeth

        if "periodontal_indices" in data and data["periodontal_indices"] is not None:
            indices = data["periodontal_indices"]
            if not isinstance(indices, dict):
                result.add_error("Los índices periodontales deben ser un objeto", "periodontal_indices")
            else:
                cleaned_indices = {}
                for key in self.PERIODONTAL_INDICES:
                    value = self.validate_number(
                        indices.get(key), f"periodontal_indices.{key}", result, label="índice"
                    )
                    if value is not None:
                        cleaned_indices[key] = value
                result.cleaned_data["periodontal_indices"] = cleaned_indices
        return result


class BudgetPaymentValidator(BaseValidator):
    """Validator for a single payment recorded against a treatment budget."""

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "date", result, self.validate_datetime)
        self._required(data, "treatment", result, self.validate_string, max_length=200, sanitize=True)
        self._required(data, "amount", result, self.validate_price, label="monto")
        return result


class MaterialUseValidator(BaseValidator):
    """Validator for recording stock consumed during an appointment."""

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        self._required(data, "stock_item_id", result, self.validate_string, max_length=64)
        quantity = self.validate_number(data.get("quantity"), "quantity", result, label="cantidad")
        if quantity is not None and quantity <= 0:
            result.add_error("La cantidad debe ser mayor que 0", "quantity")
        elif quantity is not None:
            result.cleaned_data["quantity"] = quantity
        elif "quantity" not in result.field_errors:
            result.add_error("La cantidad es requerida", "quantity")
        return result


class GroupMembersValidator(BaseValidator):
    """Validator for registering several patients of a cohort at once.

    Rows left completely empty are ignored; a row with only one of name and
    phone is an error.
    """

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()
        group_name = self.validate_string(
            data.get("group_name"), "group_name", result, min_length=2, max_length=200, sanitize=True
        )
        if group_name:
            result.cleaned_data["group_name"] = group_name
        elif "group_name" not in result.field_errors:
            result.add_error("El nombre del grupo es requerido", "group_name")

        self._optional(data, "monthly_price", result, self.validate_price)

        rows = data.get("members")
        if not isinstance(rows, list):
            result.add_error("Debe agregar al menos un paciente con nombre y teléfono", "members")
            return result

        members = []
        for index, row in enumerate(rows):
            row = row if isinstance(row, dict) else {}
            first_name = str(row.get("first_name") or "").strip()
            phone = str(row.get("phone") or "").strip()
            if not first_name and not phone:
                continue
            if not first_name or not phone:
                result.add_error(
                    "Todos los pacientes deben tener nombre y teléfono, o déjelos vacíos",
                    "members",
                )
                continue
            if not PHONE_RE.match(phone):
                result.add_error(f"Teléfono inválido en la fila {index + 1}", "members")
                continue
            members.append({"first_name": sanitize_string(first_name), "phone": phone})

        if not members and "members" not in result.field_errors:
            result.add_error("Debe agregar al menos un paciente con nombre y teléfono", "members")
        result.cleaned_data["members"] = members
        return result


def validate_payload(validator: BaseValidator, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate ``data`` and return cleaned values or raise ValidationError."""
    return validator.validate(data).raise_for_errors()
