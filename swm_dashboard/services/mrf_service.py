from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from swm_dashboard.core.exceptions import (
    DuplicateEntityError,
    PersistenceError,
    ValidationFailedError,
    validation_failed,
)
from swm_dashboard.core.logging import get_logger
from swm_dashboard.models.mrf import MRF
from swm_dashboard.schemas.common import FieldChange, as_dict, disallowed_fields
from swm_dashboard.schemas.mrf import UPDATABLE_FIELDS, MRFCreate, MRFResponse, MRFUnitOption, MRFUpdate
from swm_dashboard.utils.ids import is_valid_id

logger = get_logger("services.mrf")

# Built-in unit catalogue offered for mapping before any MRF rows exist
MRF_UNIT_MAP = {
    "MRF-001": "Anjanapura MRF Unit",
    "MRF-002": "Chikkaballapura MRF Unit",
    "MRF-003": "Hosakote MRF Unit",
    "MRF-004": "Kanakapura MRF Unit",
    "MRF-005": "Nelamangala MRF Unit",
    "MRF-006": "Ramanagara MRF Unit",
    "MRF-007": "Devanahalli MRF Unit",
    "MRF-008": "Hoskote MRF Unit",
    "MRF-009": "Kolar MRF Unit",
    "MRF-010": "Chintamani MRF Unit",
}


class MRFService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, mrf_id: str) -> Optional[MRF]:
        if not is_valid_id(mrf_id):
            return None
        return self.db.query(MRF).filter(MRF.id == mrf_id).first()

    def _unit_id_taken(self, unit_id: Optional[str], exclude_id: Optional[str] = None) -> bool:
        if unit_id is None:
            return False
        query = self.db.query(MRF.id).filter(MRF.unit_id == unit_id)
        if exclude_id is not None:
            query = query.filter(MRF.id != exclude_id)
        return query.first() is not None

    def list(self) -> List[MRFResponse]:
        rows = self.db.query(MRF).order_by(MRF.date_created.asc(), MRF.id.asc()).all()
        return [MRFResponse.model_validate(row) for row in rows]

    def get_by_id(self, mrf_id: str) -> Optional[MRFResponse]:
        mrf = self._get(mrf_id)
        return MRFResponse.model_validate(mrf) if mrf is not None else None

    def get_by_unit_id(self, unit_id: str) -> Optional[MRFResponse]:
        mrf = self.db.query(MRF).filter(MRF.unit_id == unit_id).first()
        return MRFResponse.model_validate(mrf) if mrf is not None else None

    def create(self, data: Union[MRFCreate, Mapping[str, Any]]) -> MRFResponse:
        try:
            payload = MRFCreate.model_validate(data)
        except ValidationError as e:
            raise validation_failed(e)

        logger.info(f"Creating MRF {payload.name} (unit {payload.unit_id})")

        if self._unit_id_taken(payload.unit_id):
            logger.warning(f"Duplicate MRF unit id {payload.unit_id}")
            raise DuplicateEntityError(f'MRF with unit ID "{payload.unit_id}" already exists')

        mrf = MRF(**payload.model_dump())
        try:
            self.db.add(mrf)
            self.db.commit()
            self.db.refresh(mrf)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"MRF insert hit a unique constraint: {str(e)}")
            raise DuplicateEntityError(f'MRF with unit ID "{payload.unit_id}" already exists')
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating MRF: {str(e)}")
            raise PersistenceError(f"Failed to create MRF: {str(e)}")

        logger.info(f"MRF {mrf.id} created")
        return MRFResponse.model_validate(mrf)

    def update(
        self,
        mrf_id: str,
        changes: Union[MRFUpdate, Mapping[str, Any], List[FieldChange]],
    ) -> Optional[MRFResponse]:
        if isinstance(changes, list):
            rejected = disallowed_fields(changes, UPDATABLE_FIELDS)
            if rejected:
                raise ValidationFailedError(f"Fields cannot be updated: {', '.join(rejected)}")
            changes = as_dict(changes)
        try:
            change_set = MRFUpdate.model_validate(changes).to_changes()
        except ValidationError as e:
            raise validation_failed(e)

        mrf = self._get(mrf_id)
        if mrf is None:
            return None

        for change in change_set:
            if change.field == "unit_id" and self._unit_id_taken(change.value, exclude_id=mrf_id):
                raise DuplicateEntityError(f'MRF with unit ID "{change.value}" already exists')

        for change in change_set:
            setattr(mrf, change.field, change.value)

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Update of MRF {mrf_id} hit a unique constraint: {str(e)}")
            raise DuplicateEntityError("MRF unit ID already exists")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating MRF {mrf_id}: {str(e)}")
            raise PersistenceError(f"Failed to update MRF: {str(e)}")

        self.db.refresh(mrf)
        logger.info(f"MRF {mrf_id} updated")
        return MRFResponse.model_validate(mrf)

    def delete(self, mrf_id: str) -> bool:
        mrf = self._get(mrf_id)
        if mrf is None:
            return False

        try:
            self.db.delete(mrf)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting MRF {mrf_id}: {str(e)}")
            raise PersistenceError(f"Failed to delete MRF: {str(e)}")

        logger.info(f"MRF {mrf_id} deleted")
        return True

    def unit_options(self) -> List[MRFUnitOption]:
        """(unitId, name) pairs for mapping pickers; the built-in catalogue when no unit has an id yet."""
        rows = (
            self.db.query(MRF.unit_id, MRF.name)
            .filter(MRF.unit_id.isnot(None))
            .order_by(MRF.unit_id.asc())
            .all()
        )
        if rows:
            return [MRFUnitOption(unit_id=unit_id, name=name) for unit_id, name in rows]
        return [MRFUnitOption(unit_id=unit_id, name=name) for unit_id, name in MRF_UNIT_MAP.items()]
