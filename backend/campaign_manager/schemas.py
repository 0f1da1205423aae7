"""Pydantic schemas for request/response payloads.

Wire names are camelCase (`startDate`, `targetAudience`, `firstName`) through
the alias generator on `CamelModel`; Python attributes stay snake_case.
Responses are wrapped in the `{success, data, count?, pagination?}` envelope.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, computed_field, constr
from pydantic.alias_generators import to_camel

from .models import (
    AllocationStatusEnum,
    CampaignStatusEnum,
    LeadSourcePlatformEnum,
    LeadStatusEnum,
    ObjectiveEnum,
    PlatformEnum,
    RoleEnum,
)
from .services.metrics import total_metrics

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for every payload: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Envelopes --------------------------------------------------------

class DataResponse(BaseModel, Generic[T]):
    """Success envelope for a single object."""

    success: bool = True
    data: T


class ListResponse(BaseModel):
    """Success envelope for unpaginated lists."""

    success: bool = True
    count: int
    data: List[Dict[str, Any]]


class PageResponse(ListResponse):
    """Success envelope for paginated lists; `next`/`prev` appear only when that page exists."""

    pagination: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Failure envelope returned by every exception handler."""

    success: bool = Field(False, description="Always false for errors")
    error: str = Field(description="Human readable error message")

    model_config = {
        "json_schema_extra": {"example": {"success": False, "error": "Campaign not found"}}
    }


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status")

    model_config = {"json_schema_extra": {"example": {"status": "ok"}}}


# Auth & users -----------------------------------------------------

class RegisterRequest(CamelModel):
    """Payload for user registration. Role is always `user` on sign-up."""

    name: constr(strip_whitespace=True, min_length=1) = Field(description="User full name")
    email: EmailStr = Field(description="User email address")
    password: constr(min_length=6) = Field(description="Password (minimum 6 characters)")
    company: Optional[str] = Field(None, description="Company name")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Jane Doe", "email": "jane@acme.com", "password": "secret123", "company": "Acme"}
        }
    )


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class PasswordChange(CamelModel):
    """Payload for changing the password of the signed-in user."""

    current_password: str
    new_password: constr(min_length=6)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    password: constr(min_length=6)


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own profile."""

    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    email: Optional[EmailStr] = None
    company: Optional[str] = None


class UserOut(CamelModel):
    """Public representation of a user (never includes the password)."""

    id: UUID
    name: str
    email: str
    company: Optional[str] = None
    role: RoleEnum
    created_at: Optional[datetime] = None


class AuthOut(CamelModel):
    """Returned by register, login and reset-password."""

    id: UUID
    name: str
    email: str
    company: Optional[str] = None
    role: RoleEnum
    token: str


class ConnectionSummary(CamelModel):
    """One platform entry of the profile's `platformConnections` list."""

    platform: PlatformEnum
    connected: bool
    account_id: Optional[str] = None
    connected_at: Optional[datetime] = None


class ProfileOut(UserOut):
    platform_connections: List[ConnectionSummary] = Field(default_factory=list)


# Campaigns --------------------------------------------------------

class AgeRange(CamelModel):
    min: Optional[int] = Field(None, ge=13, le=65)
    max: Optional[int] = Field(None, ge=13, le=65)


class Location(CamelModel):
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None


class TargetAudience(CamelModel):
    """Audience definition; every part is optional and free-form."""

    age_range: Optional[AgeRange] = None
    gender: Optional[List[Literal["male", "female", "all"]]] = None
    locations: Optional[List[Location]] = None
    interests: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    custom_audiences: Optional[List[str]] = None


class Budget(CamelModel):
    total: float = Field(ge=0, description="Total budget")
    daily: Optional[float] = Field(None, ge=0, description="Daily budget")
    currency: str = Field("USD", description="ISO currency code")


class BudgetUpdate(CamelModel):
    total: Optional[float] = Field(None, ge=0)
    daily: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None


class Metrics(CamelModel):
    """Metrics reported by one ad platform (or summed across platforms)."""

    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    spend: float = 0
    ctr: float = 0
    cpc: float = 0
    cpm: float = 0
    cost_per_conversion: float = 0


class PlatformAllocationIn(CamelModel):
    name: PlatformEnum
    status: AllocationStatusEnum = AllocationStatusEnum.pending
    platform_campaign_id: Optional[str] = None
    budget: float = Field(ge=0, description="Share of the campaign budget on this platform")
    metrics: Optional[Metrics] = None


class PlatformAllocationOut(CamelModel):
    name: PlatformEnum
    status: AllocationStatusEnum
    platform_campaign_id: Optional[str] = None
    budget: float
    metrics: Metrics
    last_updated: Optional[datetime] = None


class CampaignCreate(CamelModel):
    """Payload for creating a campaign. Any `owner` in the body is ignored."""

    name: constr(strip_whitespace=True, min_length=1)
    description: Optional[str] = None
    objective: ObjectiveEnum
    status: CampaignStatusEnum = CampaignStatusEnum.draft
    start_date: datetime
    end_date: datetime
    budget: Budget
    target_audience: Optional[TargetAudience] = None
    platforms: List[PlatformAllocationIn] = Field(default_factory=list)
    ad_creatives: List[Dict[str, Any]] = Field(default_factory=list)
    team: List[UUID] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class CampaignUpdate(CamelModel):
    """Partial update; only fields present in the body are applied."""

    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    description: Optional[str] = None
    objective: Optional[ObjectiveEnum] = None
    status: Optional[CampaignStatusEnum] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[BudgetUpdate] = None
    target_audience: Optional[TargetAudience] = None
    platforms: Optional[List[PlatformAllocationIn]] = None
    ad_creatives: Optional[List[Dict[str, Any]]] = None
    team: Optional[List[UUID]] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class CampaignOut(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    objective: ObjectiveEnum
    status: CampaignStatusEnum
    start_date: datetime
    end_date: datetime
    budget: Budget
    target_audience: Optional[Dict[str, Any]] = None
    platforms: List[PlatformAllocationOut] = Field(default_factory=list)
    ad_creatives: List[Dict[str, Any]] = Field(default_factory=list)
    leads: List[UUID] = Field(default_factory=list, validation_alias="lead_ids", serialization_alias="leads")
    owner: UUID = Field(validation_alias="owner_id", serialization_alias="owner")
    team: List[UUID] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field(alias="totalMetrics")
    @property
    def total_metrics(self) -> Metrics:
        """Sum of every allocation's metrics with ratios recomputed from the sums."""
        return Metrics(**total_metrics(p.metrics for p in self.platforms).as_dict())


class CampaignMetricsOut(CamelModel):
    """Response of GET /campaigns/{id}/metrics."""

    campaign_id: UUID
    name: str
    platforms: List[PlatformAllocationOut]
    total_metrics: Metrics


# Leads ------------------------------------------------------------

class LeadSourceIn(CamelModel):
    platform: LeadSourcePlatformEnum
    campaign: UUID = Field(description="Campaign the lead is attributed to")
    ad_creative: Optional[str] = None
    landing_page: Optional[str] = None


class LeadSourceUpdate(CamelModel):
    platform: Optional[LeadSourcePlatformEnum] = None
    campaign: Optional[UUID] = None
    ad_creative: Optional[str] = None
    landing_page: Optional[str] = None


class LeadCreate(CamelModel):
    """Payload for creating a lead. Any `owner` in the body is ignored."""

    first_name: constr(strip_whitespace=True, min_length=1)
    last_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    status: LeadStatusEnum = LeadStatusEnum.new
    source: LeadSourceIn
    additional_info: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    assigned_to: Optional[UUID] = None
    tags: List[str] = Field(default_factory=list)


class LeadUpdate(CamelModel):
    first_name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    status: Optional[LeadStatusEnum] = None
    source: Optional[LeadSourceUpdate] = None
    additional_info: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    assigned_to: Optional[UUID] = None
    tags: Optional[List[str]] = None


class CampaignRef(CamelModel):
    id: UUID
    name: str


class LeadSourceOut(CamelModel):
    platform: LeadSourcePlatformEnum
    campaign: Optional[CampaignRef] = None
    ad_creative: Optional[str] = None
    landing_page: Optional[str] = None


class LeadOut(CamelModel):
    id: UUID
    first_name: str
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    status: LeadStatusEnum
    source: LeadSourceOut
    additional_info: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    owner: UUID = Field(validation_alias="owner_id", serialization_alias="owner")
    assigned_to: Optional[UUID] = Field(
        None,
        validation_alias=AliasChoices("assigned_to_id", "assignedTo", "assigned_to"),
        serialization_alias="assignedTo",
    )
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadImportRequest(CamelModel):
    """Pull lead-form submissions from an ad platform into a campaign."""

    platform: Literal["facebook", "linkedin"]
    form_id: constr(strip_whitespace=True, min_length=1)
    campaign: UUID


class LeadImportOut(CamelModel):
    imported: int
    skipped: int
    leads: List[LeadOut]


# Platform connections ---------------------------------------------

class ConnectRequest(CamelModel):
    """Credentials for one ad platform; which fields are required depends on the platform."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ConnectOut(CamelModel):
    platform: PlatformEnum
    connected: bool
    account_id: Optional[str] = None


class ConnectionOut(CamelModel):
    """Projection of a stored connection; tokens are never returned."""

    platform: PlatformEnum
    connected: bool
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    expires_at: Optional[datetime] = None


class DisconnectOut(CamelModel):
    platform: PlatformEnum
    connected: bool = False
