from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from swm_dashboard.schemas.common import FieldChange, changes_from

MRFStatus = Literal["Active", "Inactive", "Under Maintenance"]

UPDATABLE_FIELDS = (
    "unit_id",
    "name",
    "status",
    "taluk",
    "village",
    "address",
    "phone",
    "email",
    "contact_person",
    "capacity",
    "operational_status",
    "equipment",
)


class MRFCreate(BaseModel):
    unit_id: Optional[str] = Field(None, max_length=100, alias="unitId", description="Unit code, e.g. MRF-001")
    name: str = Field(..., min_length=1, max_length=255, description="MRF unit name")
    status: Optional[MRFStatus] = None
    taluk: Optional[str] = Field(None, max_length=255)
    village: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255, alias="contactPerson")
    capacity: Optional[float] = Field(None, ge=0, description="Capacity in kg")
    operational_status: Optional[str] = Field(None, max_length=100, alias="operationalStatus")
    equipment: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class MRFUpdate(BaseModel):
    unit_id: Optional[str] = Field(None, max_length=100, alias="unitId")
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[MRFStatus] = None
    taluk: Optional[str] = Field(None, max_length=255)
    village: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255, alias="contactPerson")
    capacity: Optional[float] = Field(None, ge=0)
    operational_status: Optional[str] = Field(None, max_length=100, alias="operationalStatus")
    equipment: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def reject_null_name(self):
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be null")
        return self

    def to_changes(self) -> List[FieldChange]:
        return changes_from(self, UPDATABLE_FIELDS)


class MRFResponse(BaseModel):
    id: str
    unit_id: Optional[str] = Field(None, alias="unitId")
    name: str
    status: Optional[MRFStatus] = None
    date_created: Optional[datetime] = Field(None, alias="dateCreated")
    taluk: Optional[str] = None
    village: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = Field(None, alias="contactPerson")
    capacity: Optional[float] = None
    operational_status: Optional[str] = Field(None, alias="operationalStatus")
    equipment: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MRFUnitOption(BaseModel):
    unit_id: str = Field(..., alias="unitId")
    name: str

    model_config = ConfigDict(populate_by_name=True)
