from sqlalchemy import Column, String, Float, DateTime, Index

from swm_dashboard.core.database import Base
from swm_dashboard.utils.date import utcnow
from swm_dashboard.utils.ids import new_id


class PerformanceMetrics(Base):
    __tablename__ = "performance_metrics"

    id = Column(String(32), primary_key=True, default=new_id)

    # Plain reference to gram_panchayats.id; existence is not enforced
    gram_panchayat_id = Column(String(32), nullable=False, index=True)
    date_recorded = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    # Waste in kg, revenue in INR, compliance score in percent
    wet_waste = Column(Float, nullable=False)
    dry_waste = Column(Float, nullable=False)
    sanitary_waste = Column(Float, nullable=False)
    revenue = Column(Float, nullable=False)
    compliance_score = Column(Float, nullable=False)

    last_updated = Column(DateTime(timezone=True), default=utcnow, nullable=True)


Index(
    "ix_performance_metrics_gp_date_recorded",
    PerformanceMetrics.gram_panchayat_id,
    PerformanceMetrics.date_recorded.desc(),
)
