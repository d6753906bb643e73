"""
Abstract interfaces for the persistence gateway and the auth provider.

Repositories are split into reader and writer contracts so services and tests
can depend on the narrowest surface they need. Write methods accept
``commit``: when False the change is only flushed, letting a service group
several writes into one database transaction.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from .entities import (
    Appointment,
    AppointmentMaterial,
    AuthIdentity,
    DentistProfile,
    MedicalHistory,
    Patient,
    StockItem,
    Transaction,
    Visit,
)


class IDentistProfileReader(ABC):
    @abstractmethod
    def get_by_uid(self, uid: str) -> Optional[DentistProfile]:
        """Get a dentist profile by account uid."""
        pass

    @abstractmethod
    def list_all(self) -> List[DentistProfile]:
        """All dentist profiles, newest first (admin view)."""
        pass


class IDentistProfileWriter(ABC):
    @abstractmethod
    def create(self, profile: DentistProfile, commit: bool = True) -> DentistProfile:
        pass

    @abstractmethod
    def update(self, profile: DentistProfile, commit: bool = True) -> DentistProfile:
        pass


class IDentistProfileRepository(IDentistProfileReader, IDentistProfileWriter):
    """Complete dentist profile repository interface."""

    pass


class IPatientReader(ABC):
    @abstractmethod
    def get_by_id(self, patient_id: str) -> Optional[Patient]:
        pass

    @abstractmethod
    def list_by_dentist(self, dentist_id: str) -> List[Patient]:
        """Patients of a dentist, newest first."""
        pass


class IPatientWriter(ABC):
    @abstractmethod
    def add(self, patient: Patient, commit: bool = True) -> Patient:
        pass

    @abstractmethod
    def update(self, patient: Patient, commit: bool = True) -> Patient:
        pass

    @abstractmethod
    def delete(self, patient_id: str, commit: bool = True) -> None:
        pass


class IPatientRepository(IPatientReader, IPatientWriter):
    pass


class IAppointmentReader(ABC):
    @abstractmethod
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        pass

    @abstractmethod
    def list_by_dentist(self, dentist_id: str) -> List[Appointment]:
        """Appointments of a dentist in ascending date order."""
        pass

    @abstractmethod
    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Appointment]:
        """Appointments of one patient, most recent first."""
        pass


class IAppointmentWriter(ABC):
    @abstractmethod
    def add(self, appointment: Appointment, commit: bool = True) -> Appointment:
        pass

    @abstractmethod
    def update(self, appointment: Appointment, commit: bool = True) -> Appointment:
        pass

    @abstractmethod
    def delete(self, appointment_id: str, commit: bool = True) -> None:
        pass


class IAppointmentRepository(IAppointmentReader, IAppointmentWriter):
    pass


class ITransactionReader(ABC):
    @abstractmethod
    def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    def list_by_dentist(self, dentist_id: str) -> List[Transaction]:
        """Transactions of a dentist, most recent date first."""
        pass

    @abstractmethod
    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Transaction]:
        pass


class ITransactionWriter(ABC):
    @abstractmethod
    def add(self, transaction: Transaction, commit: bool = True) -> Transaction:
        pass

    @abstractmethod
    def update(self, transaction: Transaction, commit: bool = True) -> Transaction:
        pass

    @abstractmethod
    def delete(self, transaction_id: str, commit: bool = True) -> None:
        pass


class ITransactionRepository(ITransactionReader, ITransactionWriter):
    pass


class IStockReader(ABC):
    @abstractmethod
    def get_by_id(self, item_id: str) -> Optional[StockItem]:
        pass

    @abstractmethod
    def list_by_dentist(self, dentist_id: str) -> List[StockItem]:
        """Stock items of a dentist ordered by name."""
        pass


class IStockWriter(ABC):
    @abstractmethod
    def add(self, item: StockItem, commit: bool = True) -> StockItem:
        pass

    @abstractmethod
    def update(self, item: StockItem, commit: bool = True) -> StockItem:
        pass

    @abstractmethod
    def delete(self, item_id: str, commit: bool = True) -> None:
        pass

    @abstractmethod
    def change_quantity(self, item_id: str, delta: float, commit: bool = True) -> StockItem:
        """Apply ``delta`` to the quantity.

        Raises:
            NotFoundError: if the item does not exist
            InsufficientStockError: if the result would be negative
        """
        pass


class IStockRepository(IStockReader, IStockWriter):
    pass


class IAppointmentMaterialRepository(ABC):
    @abstractmethod
    def add(self, material: AppointmentMaterial, commit: bool = True) -> AppointmentMaterial:
        pass

    @abstractmethod
    def get_by_id(self, material_id: str) -> Optional[AppointmentMaterial]:
        pass

    @abstractmethod
    def list_by_appointment(self, appointment_id: str) -> List[AppointmentMaterial]:
        """Materials of an appointment, most recently registered first."""
        pass

    @abstractmethod
    def delete(self, material_id: str, commit: bool = True) -> None:
        pass


class IMedicalHistoryRepository(ABC):
    @abstractmethod
    def get_by_patient(self, patient_id: str) -> Optional[MedicalHistory]:
        pass

    @abstractmethod
    def list_by_dentist(self, dentist_id: str) -> List[MedicalHistory]:
        pass

    @abstractmethod
    def save(self, history: MedicalHistory, commit: bool = True) -> MedicalHistory:
        """Create the patient's history or overwrite the existing one."""
        pass

    @abstractmethod
    def delete_by_patient(self, patient_id: str, commit: bool = True) -> None:
        pass


class IVisitRepository(ABC):
    @abstractmethod
    def add(self, visit: Visit, commit: bool = True) -> Visit:
        pass

    @abstractmethod
    def get_by_id(self, visit_id: str) -> Optional[Visit]:
        pass

    @abstractmethod
    def get_by_appointment(self, dentist_id: str, appointment_id: str) -> Optional[Visit]:
        pass

    @abstractmethod
    def list_by_dentist(self, dentist_id: str) -> List[Visit]:
        pass

    @abstractmethod
    def list_by_patient(self, dentist_id: str, patient_id: str) -> List[Visit]:
        """Visits of one patient, most recent first."""
        pass

    @abstractmethod
    def update(self, visit: Visit, commit: bool = True) -> Visit:
        pass

    @abstractmethod
    def delete(self, visit_id: str, commit: bool = True) -> None:
        pass


AuthListener = Callable[[Optional[AuthIdentity]], None]


class IAuthProvider(ABC):
    """Email/password authentication provider."""

    @abstractmethod
    def register(self, email: str, password: str, display_name: str, commit: bool = True) -> AuthIdentity:
        pass

    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthIdentity:
        pass

    @abstractmethod
    def sign_out(self) -> None:
        pass

    @abstractmethod
    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        """Subscribe to session changes; returns an unsubscribe function."""
        pass

    @abstractmethod
    def send_password_reset(self, email: str) -> None:
        pass

    @abstractmethod
    def confirm_password_reset(self, token: str, new_password: str) -> AuthIdentity:
        pass

    @abstractmethod
    def get_identity(self, uid: str) -> Optional[AuthIdentity]:
        pass
