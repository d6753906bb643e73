"""
Unit tests for the payload validators used by the controllers.
"""

from datetime import date, datetime, timezone

import pytest

from dentos.core.exceptions import ValidationError
from dentos.core.validation import (
    AppointmentValidator,
    GroupMembersValidator,
    MaterialUseValidator,
    MedicalHistoryValidator,
    PatientValidator,
    RegistrationValidator,
    StockItemValidator,
    TransactionValidator,
    sanitize_string,
    validate_payload,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def valid_patient(**overrides):
    data = {
        "first_name": "Juan",
        "last_name": "Gómez",
        "phone": "1155551234",
        "date_of_birth": "1990-05-20",
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestPatientValidator:
    def test_valid_payload_is_cleaned(self):
        cleaned = validate_payload(PatientValidator(), valid_patient(email="JUAN@Example.com"))
        assert cleaned["date_of_birth"] == date(1990, 5, 20)
        assert cleaned["email"] == "juan@example.com"

    def test_missing_phone_reports_the_field(self):
        data = valid_patient()
        del data["phone"]
        with pytest.raises(ValidationError) as exc:
            validate_payload(PatientValidator(), data)
        assert exc.value.field == "phone"

    def test_names_only_accept_letters(self):
        result = PatientValidator().validate(valid_patient(first_name="Juan3"))
        assert not result.is_valid
        assert "first_name" in result.field_errors

    def test_future_birth_date_is_rejected(self):
        result = PatientValidator().validate(valid_patient(date_of_birth="2999-01-01"))
        assert result.field_errors["date_of_birth"] == "La fecha no puede ser futura"

    def test_partial_update_only_checks_present_fields(self):
        cleaned = validate_payload(PatientValidator(partial=True), {"medical_notes": "Alergia <b>penicilina</b>"})
        assert cleaned == {"medical_notes": "Alergia bpenicilina/b"}

    def test_blank_optional_field_clears_it(self):
        cleaned = validate_payload(PatientValidator(partial=True), {"group_name": ""})
        assert cleaned == {"group_name": None}


@pytest.mark.unit
class TestAppointmentValidator:
    def payload(self, **overrides):
        data = {"patient_id": "p1", "date": "2025-03-12T10:00:00Z", "duration": 30, "type": "cleaning"}
        data.update(overrides)
        return data

    def test_status_defaults_to_scheduled(self):
        cleaned = validate_payload(AppointmentValidator(now=NOW), self.payload())
        assert cleaned["status"] == "scheduled"
        assert cleaned["date"] == datetime(2025, 3, 12, 10, 0, tzinfo=timezone.utc)

    def test_earlier_today_is_accepted(self):
        cleaned = validate_payload(AppointmentValidator(now=NOW), self.payload(date="2025-03-10T08:00:00Z"))
        assert cleaned["date"].day == 10

    def test_past_date_is_rejected(self):
        result = AppointmentValidator(now=NOW).validate(self.payload(date="2025-03-09T10:00:00Z"))
        assert result.field_errors["date"] == "La fecha no puede ser en el pasado"

    def test_more_than_two_years_ahead_is_rejected(self):
        result = AppointmentValidator(now=NOW).validate(self.payload(date="2027-04-01T10:00:00Z"))
        assert "date" in result.field_errors

    @pytest.mark.parametrize("duration", [10, 500, "treinta"])
    def test_duration_bounds(self, duration):
        result = AppointmentValidator(now=NOW).validate(self.payload(duration=duration))
        assert "duration" in result.field_errors

    def test_unknown_type_is_rejected(self):
        result = AppointmentValidator(now=NOW).validate(self.payload(type="whitening"))
        assert "type" in result.field_errors

    def test_partial_update_accepts_past_dates(self):
        cleaned = validate_payload(AppointmentValidator(partial=True), {"date": "2024-01-01T10:00:00Z"})
        assert cleaned == {"date": datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)}


@pytest.mark.unit
class TestTransactionValidator:
    def test_possible_flag_is_parsed(self):
        cleaned = validate_payload(
            TransactionValidator(),
            {
                "type": "income",
                "amount": "50,5",
                "category": "consulta",
                "concept": "Control",
                "date": "2025-03-05",
                "payment_method": "transfer",
                "status": "pending",
                "is_possible": "true",
            },
        )
        assert cleaned["amount"] == 50.5
        assert cleaned["is_possible"] is True

    def test_negative_amount_is_rejected(self):
        result = TransactionValidator(partial=True).validate({"amount": -1})
        assert result.field_errors["amount"] == "El monto no puede ser negativo"


@pytest.mark.unit
class TestStockItemValidator:
    def test_category_must_be_known(self):
        result = StockItemValidator().validate(
            {"name": "Resina", "category": "food", "quantity": 3, "unit": "jeringa", "min_quantity": 1}
        )
        assert "category" in result.field_errors

    def test_fractional_quantities_are_allowed(self):
        cleaned = validate_payload(StockItemValidator(partial=True), {"quantity": 2.5})
        assert cleaned == {"quantity": 2.5}


@pytest.mark.unit
def test_registration_requires_license():
    result = RegistrationValidator().validate(
        {"email": "a@b.co", "password": "secreto123", "display_name": "Ana Perez", "license_number": "12"}
    )
    assert "license_number" in result.field_errors


@pytest.mark.unit
def test_registration_rejects_short_password():
    result = RegistrationValidator().validate(
        {"email": "a@b.co", "password": "123", "display_name": "Ana Perez", "license_number": "MP-1234"}
    )
    assert "password" in result.field_errors


@pytest.mark.unit
class TestGroupMembersValidator:
    def test_empty_rows_are_skipped(self):
        cleaned = validate_payload(
            GroupMembersValidator(),
            {
                "group_name": "Equipo Futbol",
                "monthly_price": 30,
                "members": [{"first_name": "Leo", "phone": "1155551234"}, {"first_name": "", "phone": ""}],
            },
        )
        assert cleaned["members"] == [{"first_name": "Leo", "phone": "1155551234"}]
        assert cleaned["monthly_price"] == 30

    def test_half_filled_row_is_an_error(self):
        result = GroupMembersValidator().validate(
            {"group_name": "Equipo Futbol", "members": [{"first_name": "Leo", "phone": ""}]}
        )
        assert "members" in result.field_errors

    def test_at_least_one_member(self):
        result = GroupMembersValidator().validate({"group_name": "Equipo Futbol", "members": []})
        assert "members" in result.field_errors


@pytest.mark.unit
class TestMedicalHistoryValidator:
    def test_lists_accept_comma_separated_text(self):
        cleaned = validate_payload(MedicalHistoryValidator(), {"allergies": "penicilina, látex"})
        assert cleaned["allergies"] == ["penicilina", "látex"]

    def test_null_list_becomes_empty(self):
        cleaned = validate_payload(MedicalHistoryValidator(), {"current_medications": None})
        assert cleaned["current_medications"] == []

    def test_odontogram_tooth_status_is_checked(self):
        result = MedicalHistoryValidator().validate({"odontogram": {"11": {"status": "broken"}}})
        assert "odontogram.11" in result.field_errors

    def test_odontogram_is_cleaned(self):
        cleaned = validate_payload(
            MedicalHistoryValidator(), {"odontogram": {"11": {"status": "caries", "notes": "oclusal"}}}
        )
        assert cleaned["odontogram"] == {"11": {"status": "caries", "notes": "oclusal"}}


@pytest.mark.unit
def test_material_quantity_must_be_positive():
    result = MaterialUseValidator().validate({"stock_item_id": "s1", "quantity": 0})
    assert "quantity" in result.field_errors


@pytest.mark.unit
def test_sanitize_string_strips_markup():
    assert sanitize_string(" <script>javascript:alert(1)</script> ") == "scriptalert(1)/script"
