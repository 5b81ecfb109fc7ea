from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError
from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from swm_dashboard.core.exceptions import PersistenceError, ValidationFailedError, validation_failed
from swm_dashboard.core.logging import get_logger
from swm_dashboard.models.performance_metrics import PerformanceMetrics
from swm_dashboard.schemas.gram_panchayat import GramPanchayatResponse
from swm_dashboard.schemas.performance_metrics import (
    DashboardSummary,
    PerformanceMetricsCreate,
    PerformanceMetricsResponse,
    WasteTrendPoint,
)
from swm_dashboard.utils.date import ensure_utc, utcnow

logger = get_logger("services.performance_metrics")


class PerformanceMetricsService:
    """Append-only waste / revenue / compliance observations per panchayat."""

    def __init__(self, db: Session):
        self.db = db

    def _in_range(self, query, start: Optional[datetime], end: Optional[datetime]):
        if start is not None:
            query = query.filter(PerformanceMetrics.date_recorded >= ensure_utc(start))
        if end is not None:
            query = query.filter(PerformanceMetrics.date_recorded <= ensure_utc(end))
        return query

    def record(
        self,
        gram_panchayat_id: str,
        data: Union[PerformanceMetricsCreate, Mapping[str, Any]],
    ) -> PerformanceMetricsResponse:
        """Insert one observation. The panchayat id is stored as given, without a lookup."""
        if not gram_panchayat_id or not isinstance(gram_panchayat_id, str):
            raise ValidationFailedError("gramPanchayatId is required")
        try:
            payload = PerformanceMetricsCreate.model_validate(data)
        except ValidationError as e:
            raise validation_failed(e)

        now = utcnow()
        metrics = PerformanceMetrics(
            gram_panchayat_id=gram_panchayat_id,
            date_recorded=ensure_utc(payload.date_recorded) if payload.date_recorded else now,
            wet_waste=payload.wet_waste,
            dry_waste=payload.dry_waste,
            sanitary_waste=payload.sanitary_waste,
            revenue=payload.revenue,
            compliance_score=payload.compliance_score,
            last_updated=now,
        )

        try:
            self.db.add(metrics)
            self.db.commit()
            self.db.refresh(metrics)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recording metrics for gram panchayat {gram_panchayat_id}: {str(e)}")
            raise PersistenceError(f"Failed to record performance metrics: {str(e)}")

        logger.info(f"Performance metrics {metrics.id} recorded for gram panchayat {gram_panchayat_id}")
        return PerformanceMetricsResponse.model_validate(metrics)

    def latest_for(self, gram_panchayat_id: str) -> Optional[PerformanceMetricsResponse]:
        metrics = (
            self.db.query(PerformanceMetrics)
            .filter(PerformanceMetrics.gram_panchayat_id == gram_panchayat_id)
            .order_by(PerformanceMetrics.date_recorded.desc(), PerformanceMetrics.last_updated.desc())
            .first()
        )
        return PerformanceMetricsResponse.model_validate(metrics) if metrics is not None else None

    def history_for(
        self,
        gram_panchayat_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        newest_first: bool = False,
    ) -> List[PerformanceMetricsResponse]:
        """Observations with start <= dateRecorded <= end (either bound optional)."""
        if start is not None and end is not None and ensure_utc(start) > ensure_utc(end):
            raise ValidationFailedError("start must not be after end")

        query = self._in_range(
            self.db.query(PerformanceMetrics).filter(
                PerformanceMetrics.gram_panchayat_id == gram_panchayat_id
            ),
            start,
            end,
        )
        order = PerformanceMetrics.date_recorded.desc() if newest_first else PerformanceMetrics.date_recorded.asc()
        return [PerformanceMetricsResponse.model_validate(row) for row in query.order_by(order).all()]

    def waste_trend(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[WasteTrendPoint]:
        """Daily (UTC) totals of wet, dry and sanitary waste across every panchayat, oldest first."""
        if start is not None and end is not None and ensure_utc(start) > ensure_utc(end):
            raise ValidationFailedError("start must not be after end")

        rows = (
            self._in_range(self.db.query(PerformanceMetrics), start, end)
            .order_by(PerformanceMetrics.date_recorded.asc())
            .all()
        )

        grouped: "OrderedDict[Any, WasteTrendPoint]" = OrderedDict()
        for row in rows:
            day = ensure_utc(row.date_recorded).date()
            point = grouped.get(day)
            if point is None:
                point = grouped[day] = WasteTrendPoint(day=day)
            point.wet_waste += row.wet_waste
            point.dry_waste += row.dry_waste
            point.sanitary_waste += row.sanitary_waste

        return list(grouped.values())

    def latest_per_panchayat(self) -> Dict[str, PerformanceMetricsResponse]:
        latest = (
            self.db.query(
                PerformanceMetrics.gram_panchayat_id,
                func.max(PerformanceMetrics.date_recorded).label("latest"),
            )
            .group_by(PerformanceMetrics.gram_panchayat_id)
            .subquery()
        )
        rows = (
            self.db.query(PerformanceMetrics)
            .join(
                latest,
                and_(
                    PerformanceMetrics.gram_panchayat_id == latest.c.gram_panchayat_id,
                    PerformanceMetrics.date_recorded == latest.c.latest,
                ),
            )
            .order_by(PerformanceMetrics.last_updated.desc())
            .all()
        )

        result: Dict[str, PerformanceMetricsResponse] = {}
        for row in rows:
            # Two rows recorded at the same instant: keep the most recently updated one
            result.setdefault(row.gram_panchayat_id, PerformanceMetricsResponse.model_validate(row))
        return result

    def dashboard_summary(self, panchayats: Sequence[GramPanchayatResponse]) -> DashboardSummary:
        """Headline figures for the dashboard cards, using each panchayat's latest observation."""
        latest = self.latest_per_panchayat()
        observed = [latest[gp.id] for gp in panchayats if gp.id in latest]

        average_compliance = None
        if observed:
            average_compliance = sum(m.compliance_score for m in observed) / len(observed)

        return DashboardSummary(
            total_panchayats=len(panchayats),
            active_panchayats=sum(1 for gp in panchayats if gp.status == "Active"),
            total_households=sum(gp.households for gp in panchayats),
            total_revenue=sum(m.revenue for m in observed),
            average_compliance_score=average_compliance,
        )
