from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint, UniqueConstraint

from swm_dashboard.core.database import Base
from swm_dashboard.utils.date import utcnow
from swm_dashboard.utils.ids import new_id


class GramPanchayat(Base):
    __tablename__ = "gram_panchayats"
    __table_args__ = (
        UniqueConstraint("name", "taluk", name="uq_gram_panchayats_name_taluk"),
        CheckConstraint("status IN ('Active', 'Inactive')", name="ck_gram_panchayats_status"),
    )

    id = Column(String(32), primary_key=True, default=new_id)

    name = Column(String(255), nullable=False, index=True)
    taluk = Column(String(255), nullable=False)
    village = Column(String(255), nullable=False)
    sarpanch = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False)

    # MRF mapping; mrf_mapped is true iff mrf_unit_id is set
    mrf_mapped = Column(Boolean, nullable=False, default=False)
    mrf_unit_id = Column(String(100), nullable=True)
    mrf_unit_name = Column(String(255), nullable=True)

    # Account on the authentication server that administers this panchayat
    user_id = Column(String(255), nullable=True, index=True)

    households = Column(Integer, nullable=False, default=0)
    shops = Column(Integer, nullable=False, default=0)
    institutions = Column(Integer, nullable=False, default=0)
    swm_sheds = Column(Integer, nullable=False, default=0)

    date_created = Column(DateTime(timezone=True), default=utcnow, nullable=False)
