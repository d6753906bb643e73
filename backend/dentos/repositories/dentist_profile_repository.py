from typing import List, Optional

from dentos.core.exceptions import NotFoundError
from dentos.db.base import DentistProfile as DbDentistProfile
from dentos.domain.entities import DentistProfile
from dentos.domain.interfaces import IDentistProfileRepository
from dentos.repositories.base_repository import SqlAlchemyRepository
from dentos.utils.date_utils import ensure_utc

PROFILE_FIELDS = (
    "email",
    "display_name",
    "license_number",
    "specialization",
    "phone",
    "clinic_name",
    "clinic_address",
    "subscription_status",
    "trial_ends_at",
    "subscription_ends_at",
    "plan_type",
    "last_payment_date",
)


class DentistProfileRepository(SqlAlchemyRepository, IDentistProfileRepository):
    model = DbDentistProfile

    def get_by_uid(self, uid: str) -> Optional[DentistProfile]:
        db_obj = self._get_row(uid)
        return self._to_domain(db_obj) if db_obj else None

    def list_all(self) -> List[DentistProfile]:
        rows = self.db.query(DbDentistProfile).order_by(DbDentistProfile.created_at.desc()).all()
        return [self._to_domain(r) for r in rows]

    def create(self, profile: DentistProfile, commit: bool = True) -> DentistProfile:
        db_obj = DbDentistProfile(uid=profile.uid)
        self._apply(db_obj, {f: getattr(profile, f) for f in PROFILE_FIELDS})
        if profile.created_at is not None:
            db_obj.created_at = profile.created_at
            db_obj.updated_at = profile.updated_at or profile.created_at
        self.db.add(db_obj)
        return self._to_domain(self._save(db_obj, commit))

    def update(self, profile: DentistProfile, commit: bool = True) -> DentistProfile:
        db_obj = self._get_row(profile.uid)
        if db_obj is None:
            raise NotFoundError("Perfil de dentista no encontrado")
        self._apply(db_obj, {f: getattr(profile, f) for f in PROFILE_FIELDS})
        if profile.updated_at is not None:
            db_obj.updated_at = profile.updated_at
        return self._to_domain(self._save(db_obj, commit))

    def _to_domain(self, db_obj: DbDentistProfile) -> DentistProfile:
        return DentistProfile(
            uid=db_obj.uid,
            email=db_obj.email,
            display_name=db_obj.display_name,
            license_number=db_obj.license_number,
            specialization=db_obj.specialization,
            phone=db_obj.phone,
            clinic_name=db_obj.clinic_name,
            clinic_address=db_obj.clinic_address,
            subscription_status=db_obj.subscription_status,
            trial_ends_at=ensure_utc(db_obj.trial_ends_at),
            subscription_ends_at=ensure_utc(db_obj.subscription_ends_at),
            plan_type=db_obj.plan_type,
            last_payment_date=ensure_utc(db_obj.last_payment_date),
            created_at=ensure_utc(db_obj.created_at),
            updated_at=ensure_utc(db_obj.updated_at),
        )
