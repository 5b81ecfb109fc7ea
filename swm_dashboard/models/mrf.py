from sqlalchemy import Column, String, Float, DateTime, Text, UniqueConstraint

from swm_dashboard.core.database import Base
from swm_dashboard.utils.date import utcnow
from swm_dashboard.utils.ids import new_id


class MRF(Base):
    """Material Recovery Facility. Panchayats point at `unit_id`; there is no back reference."""

    __tablename__ = "mrfs"
    __table_args__ = (UniqueConstraint("unit_id", name="uq_mrfs_unit_id"),)

    id = Column(String(32), primary_key=True, default=new_id)

    # e.g. "MRF-001"; unique when present, any number of rows may leave it NULL
    unit_id = Column(String(100), nullable=True)
    name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=True)
    date_created = Column(DateTime(timezone=True), default=utcnow, nullable=True)

    # Location
    taluk = Column(String(255), nullable=True)
    village = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)

    # Contact
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    contact_person = Column(String(255), nullable=True)

    # Operations
    capacity = Column(Float, nullable=True)
    operational_status = Column(String(100), nullable=True)
    equipment = Column(Text, nullable=True)
