from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from swm_dashboard.schemas.common import FieldChange, changes_from

GramPanchayatStatus = Literal["Active", "Inactive"]

# Columns that may be changed through a partial update (date_created is immutable)
UPDATABLE_FIELDS = (
    "name",
    "taluk",
    "village",
    "sarpanch",
    "status",
    "mrf_mapped",
    "mrf_unit_id",
    "mrf_unit_name",
    "user_id",
    "households",
    "shops",
    "institutions",
    "swm_sheds",
)

NULLABLE_FIELDS = {"mrf_unit_id", "mrf_unit_name", "user_id"}


def mrf_mapping_error(mrf_mapped: bool, mrf_unit_id: Optional[str]) -> Optional[str]:
    """Return a message when the mapping flag and unit id disagree, else None."""
    if mrf_mapped and mrf_unit_id is None:
        return "mrfUnitId is required when mrfMapped is true"
    if not mrf_mapped and mrf_unit_id is not None:
        return "mrfMapped must be true when mrfUnitId is set"
    return None


class GramPanchayatCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Gram Panchayat name")
    taluk: str = Field(..., min_length=1, max_length=255, description="Taluk (sub-district)")
    village: str = Field(..., min_length=1, max_length=255, description="Village")
    sarpanch: str = Field(..., min_length=1, max_length=255, description="Elected head")
    status: GramPanchayatStatus = Field(..., description="Active or Inactive")
    mrf_mapped: bool = Field(False, alias="mrfMapped")
    mrf_unit_id: Optional[str] = Field(None, max_length=100, alias="mrfUnitId")
    mrf_unit_name: Optional[str] = Field(None, max_length=255, alias="mrfUnitName")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_mrf_mapping(self):
        message = mrf_mapping_error(self.mrf_mapped, self.mrf_unit_id)
        if message:
            raise ValueError(message)
        return self


class CreateGramPanchayatRequest(BaseModel):
    """Create a panchayat together with the account that will administer it."""
    email: EmailStr
    password: str = Field(..., min_length=1)
    data: GramPanchayatCreate


class GramPanchayatUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    taluk: Optional[str] = Field(None, min_length=1, max_length=255)
    village: Optional[str] = Field(None, min_length=1, max_length=255)
    sarpanch: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[GramPanchayatStatus] = None
    mrf_mapped: Optional[bool] = Field(None, alias="mrfMapped")
    mrf_unit_id: Optional[str] = Field(None, max_length=100, alias="mrfUnitId")
    mrf_unit_name: Optional[str] = Field(None, max_length=255, alias="mrfUnitName")
    user_id: Optional[str] = Field(None, alias="userId")
    households: Optional[int] = Field(None, ge=0)
    shops: Optional[int] = Field(None, ge=0)
    institutions: Optional[int] = Field(None, ge=0)
    swm_sheds: Optional[int] = Field(None, ge=0, alias="swmSheds")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def reject_null_for_required_columns(self):
        for name in self.model_fields_set:
            if name not in NULLABLE_FIELDS and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def to_changes(self) -> List[FieldChange]:
        return changes_from(self, UPDATABLE_FIELDS)


class MRFMappingRequest(BaseModel):
    mrf_unit_id: str = Field(..., min_length=1, max_length=100, alias="mrfUnitId")
    mrf_unit_name: str = Field(..., min_length=1, max_length=255, alias="mrfUnitName")

    model_config = ConfigDict(populate_by_name=True)


class GramPanchayatResponse(BaseModel):
    id: str
    name: str
    taluk: str
    village: str
    sarpanch: str
    status: GramPanchayatStatus
    mrf_mapped: bool = Field(False, alias="mrfMapped")
    mrf_unit_id: Optional[str] = Field(None, alias="mrfUnitId")
    mrf_unit_name: Optional[str] = Field(None, alias="mrfUnitName")
    user_id: Optional[str] = Field(None, alias="userId")
    date_created: Optional[datetime] = Field(None, alias="dateCreated")
    households: int = 0
    shops: int = 0
    institutions: int = 0
    swm_sheds: int = Field(0, alias="swmSheds")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
