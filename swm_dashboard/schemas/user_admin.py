from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

UserRole = Literal["admin", "user"]
BulkAction = Literal["ban", "unban", "delete", "set_role"]
RESERVED_USER_FIELDS = frozenset({"id", "name", "email", "role", "banned", "emailVerified"})


class ListUsersQuery(BaseModel):
    search_value: Optional[str] = Field(None, alias="searchValue")
    search_field: Optional[Literal["email", "name"]] = Field(None, alias="searchField")
    search_operator: Optional[Literal["contains", "starts_with", "ends_with"]] = Field(
        None, alias="searchOperator"
    )
    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0)
    sort_by: Optional[str] = Field(None, alias="sortBy")
    sort_direction: Optional[Literal["asc", "desc"]] = Field(None, alias="sortDirection")
    filter_field: Optional[str] = Field(None, alias="filterField")
    filter_value: Optional[str] = Field(None, alias="filterValue")
    filter_operator: Optional[Literal["eq", "ne", "lt", "lte", "gt", "gte"]] = Field(
        None, alias="filterOperator"
    )

    model_config = ConfigDict(populate_by_name=True)

    def to_provider_params(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AdminUser(BaseModel):
    id: str
    name: str
    email: str
    email_verified: bool = Field(False, alias="emailVerified")
    image: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    role: Optional[UserRole] = "user"
    banned: Optional[bool] = None
    ban_reason: Optional[str] = Field(None, alias="banReason")
    ban_expires: Optional[datetime] = Field(None, alias="banExpires")
    contact_details: Optional[str] = Field(None, alias="contactDetails")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UserListResponse(BaseModel):
    users: List[AdminUser] = Field(default_factory=list)
    total: int = 0
    limit: Optional[int] = None
    offset: Optional[int] = None


class CreateUserData(BaseModel):
    contact_details: Optional[str] = Field(None, alias="contactDetails")

    model_config = ConfigDict(populate_by_name=True)


class CreateUserInput(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    name: str = Field(..., min_length=1, description="Name is required")
    role: UserRole = "user"
    data: CreateUserData = Field(default_factory=CreateUserData)

    def to_provider_payload(self) -> Dict[str, Any]:
        payload = {
            "email": str(self.email),
            "password": self.password,
            "name": self.name,
            "role": self.role,
        }
        data = self.data.model_dump(by_alias=True, exclude_none=True)
        if data:
            payload["data"] = data
        return payload


class UpdateUserData(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    data: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_fields(self):
        if not any(getattr(self, name) is not None for name in ("name", "email", "role", "data")):
            raise ValueError("At least one field must be provided")
        reserved = sorted(set(self.data or {}) & RESERVED_USER_FIELDS)
        if reserved:
            raise ValueError(f"data cannot set {', '.join(reserved)}; use the top-level fields")
        return self

    def to_provider_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.data:
            data["data"] = dict(self.data)
        if self.name is not None:
            data["name"] = self.name
        if self.email is not None:
            data["email"] = str(self.email)
        if self.role is not None:
            data["role"] = self.role
        return data


class SetRoleInput(BaseModel):
    role: UserRole


class SetPasswordInput(BaseModel):
    new_password: str = Field(..., min_length=1, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class BanUserInput(BaseModel):
    ban_reason: Optional[str] = Field(None, alias="banReason")
    ban_expires_in: Optional[int] = Field(None, ge=1, alias="banExpiresIn", description="Seconds")

    model_config = ConfigDict(populate_by_name=True)


class RevokeSessionInput(BaseModel):
    session_token: str = Field(..., min_length=1, alias="sessionToken")

    model_config = ConfigDict(populate_by_name=True)


class AuthSession(BaseModel):
    id: str
    token: str
    user_id: str = Field(..., alias="userId")
    expires_at: datetime = Field(..., alias="expiresAt")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    ip_address: Optional[str] = Field(None, alias="ipAddress")
    user_agent: Optional[str] = Field(None, alias="userAgent")
    impersonated_by: Optional[str] = Field(None, alias="impersonatedBy")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ImpersonationResult(BaseModel):
    session: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None
    # The acting identity changed; the client must reload its session
    refresh_required: bool = Field(True, alias="refreshRequired")
    set_cookies: List[str] = Field(default_factory=list, exclude=True)

    model_config = ConfigDict(populate_by_name=True)


class BulkActionRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1, alias="userIds")
    role: Optional[UserRole] = None
    ban_reason: Optional[str] = Field(None, alias="banReason")
    ban_expires_in: Optional[int] = Field(None, ge=1, alias="banExpiresIn")

    model_config = ConfigDict(populate_by_name=True)


class BulkActionResult(BaseModel):
    action: BulkAction
    succeeded: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    skipped: List[str] = Field(default_factory=list)
