from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PerformanceMetricsCreate(BaseModel):
    wet_waste: float = Field(..., ge=0, alias="wetWaste", description="Wet waste in kg")
    dry_waste: float = Field(..., ge=0, alias="dryWaste", description="Dry waste in kg")
    sanitary_waste: float = Field(..., ge=0, alias="sanitaryWaste", description="Sanitary waste in kg")
    revenue: float = Field(..., ge=0, description="Revenue in INR")
    compliance_score: float = Field(..., allow_inf_nan=False, alias="complianceScore", description="Percentage")
    date_recorded: Optional[datetime] = Field(
        None, alias="dateRecorded", description="Observation time; defaults to now"
    )

    model_config = ConfigDict(populate_by_name=True)


class PerformanceMetricsResponse(BaseModel):
    id: str
    gram_panchayat_id: str = Field(..., alias="gramPanchayatId")
    date_recorded: datetime = Field(..., alias="dateRecorded")
    wet_waste: float = Field(..., alias="wetWaste")
    dry_waste: float = Field(..., alias="dryWaste")
    sanitary_waste: float = Field(..., alias="sanitaryWaste")
    revenue: float
    compliance_score: float = Field(..., alias="complianceScore")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class WasteTrendPoint(BaseModel):
    """Waste collected across all panchayats on one calendar day (UTC)."""
    day: date = Field(..., alias="date")
    wet_waste: float = Field(0, alias="wetWaste")
    dry_waste: float = Field(0, alias="dryWaste")
    sanitary_waste: float = Field(0, alias="sanitaryWaste")

    model_config = ConfigDict(populate_by_name=True)


class DashboardSummary(BaseModel):
    total_panchayats: int = Field(..., alias="totalPanchayats")
    active_panchayats: int = Field(..., alias="activePanchayats")
    total_households: int = Field(..., alias="totalHouseholds")
    total_revenue: float = Field(..., alias="totalRevenue")
    average_compliance_score: Optional[float] = Field(None, alias="averageComplianceScore")

    model_config = ConfigDict(populate_by_name=True)
