"""
Loads gram panchayats and one performance observation each from a JSON export.

Each record in the file looks like:

    {
        "id": 1, "name": "...", "taluk": "...", "village": "...", "sarpanch": "...",
        "status": "Active", "mrfMapped": true, "mrfUnitId": "MRF-001", "mrfUnitName": "...",
        "dateCreated": "2024-01-15", "households": 1250, "shops": 45, "institutions": 8,
        "swmSheds": 2, "wetWaste": 850.5, "dryWaste": 420.3, "sanitaryWaste": 45.2,
        "revenue": 12500, "complianceScore": 87.5, "lastUpdated": "2024-11-20"
    }

Seeding replaces whatever panchayats and metrics are already stored.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from swm_dashboard.core.exceptions import PersistenceError, ValidationFailedError, validation_failed
from swm_dashboard.core.logging import get_logger
from swm_dashboard.models.gram_panchayat import GramPanchayat
from swm_dashboard.models.performance_metrics import PerformanceMetrics
from swm_dashboard.schemas.gram_panchayat import GramPanchayatStatus, mrf_mapping_error
from swm_dashboard.utils.date import ensure_utc

logger = get_logger("services.seed")


class SeedRecord(BaseModel):
    source_id: Optional[int] = Field(None, alias="id")
    name: str
    taluk: str
    village: str
    sarpanch: str
    status: GramPanchayatStatus
    mrf_mapped: bool = Field(False, alias="mrfMapped")
    mrf_unit_id: Optional[str] = Field(None, alias="mrfUnitId")
    mrf_unit_name: Optional[str] = Field(None, alias="mrfUnitName")
    date_created: datetime = Field(..., alias="dateCreated")
    households: int = Field(0, ge=0)
    shops: int = Field(0, ge=0)
    institutions: int = Field(0, ge=0)
    swm_sheds: int = Field(0, ge=0, alias="swmSheds")
    wet_waste: float = Field(..., ge=0, alias="wetWaste")
    dry_waste: float = Field(..., ge=0, alias="dryWaste")
    sanitary_waste: float = Field(..., ge=0, alias="sanitaryWaste")
    revenue: float = Field(..., ge=0)
    compliance_score: float = Field(..., alias="complianceScore")
    last_updated: datetime = Field(..., alias="lastUpdated")

    model_config = ConfigDict(populate_by_name=True)


_records_adapter = TypeAdapter(List[SeedRecord])


def load_seed_records(source: Union[str, Path, List[Any]]) -> List[SeedRecord]:
    """Parse seed records from a JSON file path or an already-decoded list."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        logger.info(f"Reading seed data from {path}")
        with path.open("r", encoding="utf-8") as f:
            source = json.load(f)

    try:
        records = _records_adapter.validate_python(source)
    except ValidationError as e:
        raise validation_failed(e)

    for index, record in enumerate(records):
        message = mrf_mapping_error(record.mrf_mapped, record.mrf_unit_id)
        if message:
            raise ValidationFailedError(f"Record {index} ({record.name}): {message}")
    return records


class SeedService:
    def __init__(self, db: Session):
        self.db = db

    def seed(self, records: List[SeedRecord]) -> Tuple[int, int]:
        """
        Replace stored panchayats and metrics with `records`.

        Returns (panchayats inserted, metrics inserted). Everything happens in
        one transaction; a failure leaves the previous data in place.
        """
        logger.info(f"Seeding {len(records)} gram panchayats")

        try:
            existing = self.db.query(GramPanchayat).count()
            if existing > 0:
                logger.warning(f"Found {existing} existing gram panchayats; clearing panchayats and metrics")
                self.db.query(PerformanceMetrics).delete(synchronize_session=False)
                self.db.query(GramPanchayat).delete(synchronize_session=False)

            panchayats = [
                GramPanchayat(
                    name=record.name,
                    taluk=record.taluk,
                    village=record.village,
                    sarpanch=record.sarpanch,
                    status=record.status,
                    mrf_mapped=record.mrf_mapped,
                    mrf_unit_id=record.mrf_unit_id,
                    mrf_unit_name=record.mrf_unit_name,
                    date_created=ensure_utc(record.date_created),
                    households=record.households,
                    shops=record.shops,
                    institutions=record.institutions,
                    swm_sheds=record.swm_sheds,
                )
                for record in records
            ]
            self.db.add_all(panchayats)
            self.db.flush()

            inserted = [gp for gp in panchayats if gp.id]
            if len(inserted) != len(records):
                raise PersistenceError(
                    f"Mismatch: Expected {len(records)} gram panchayats, but only {len(inserted)} were inserted"
                )

            metrics = [
                PerformanceMetrics(
                    gram_panchayat_id=gram_panchayat.id,
                    # The export carries a single observation dated by lastUpdated
                    date_recorded=ensure_utc(record.last_updated),
                    wet_waste=record.wet_waste,
                    dry_waste=record.dry_waste,
                    sanitary_waste=record.sanitary_waste,
                    revenue=record.revenue,
                    compliance_score=record.compliance_score,
                    last_updated=ensure_utc(record.last_updated),
                )
                for record, gram_panchayat in zip(records, panchayats)
            ]
            self.db.add_all(metrics)
            self.db.flush()

            self.db.commit()
        except PersistenceError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error seeding database: {str(e)}")
            raise PersistenceError(f"Failed to seed database: {str(e)}")

        logger.info(f"Seeded {len(panchayats)} gram panchayats and {len(metrics)} performance metrics")
        return len(panchayats), len(metrics)
