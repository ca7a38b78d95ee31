"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field, StrictInt, field_validator
from typing import Optional, List
from datetime import datetime

from memberhub.core.hierarchy import ADMIN_POSITION, MIN_ROLE_POSITION, BaseRole, Permission


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str


# ---- Custom role ----
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    permissions: List[Permission] = Field(..., min_length=1)
    description: Optional[str] = Field(None, max_length=255)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    permissions: Optional[List[Permission]] = Field(None, min_length=1)
    description: Optional[str] = Field(None, max_length=255)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class PositionUpdate(BaseModel):
    position: StrictInt = Field(..., ge=MIN_ROLE_POSITION, lt=ADMIN_POSITION)


class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    color: str
    permissions: List[str]
    position: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleListResponse(BaseModel):
    roles: List[RoleOut]
    manageable_role_ids: List[int]
    can_reorder: bool


# ---- User ----
class RoleSummary(BaseModel):
    id: int
    name: str
    color: str
    position: int

    class Config:
        from_attributes = True


class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    base_role: BaseRole
    custom_role: Optional[RoleSummary] = None
    is_active: bool
    is_lead: bool
    status_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCapabilities(BaseModel):
    can_manage: bool
    can_assign_role: bool
    can_assign_custom_role: bool


class ManagedUserOut(UserOut):
    capabilities: UserCapabilities


class RoleAssignRequest(BaseModel):
    base_role: BaseRole
    custom_role_id: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)


class LeadStatusRequest(BaseModel):
    is_lead: bool


class MeResponse(BaseModel):
    user: UserOut
    position: int
    permissions: List[Permission]
    can_reorder: bool


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_username: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    ip_address: Optional[str] = None
    request_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditLogPage(BaseModel):
    logs: List[AuditLogOut]
    total: int
    page: int
    page_size: int
