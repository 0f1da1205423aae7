"""SQLAlchemy ORM models and enums.

This module defines the campaign manager schema using UUID primary keys and
explicit relationships. Authentication secrets are stored in a separate
`auth_credentials` table to keep the `users` table clean.

Sub-documents of the original document model map as follows:
- Campaign.platforms -> `campaign_platforms` child rows, ordered by position
- target audience, ad creatives, team, tags -> JSON columns
- Lead.source -> flat `source_*` columns plus the `campaign_id` foreign key
"""

import uuid
from datetime import datetime
import enum

from sqlalchemy import Column, String, DateTime, Enum, Integer, Float, ForeignKey, JSON, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, declarative_base


# Single Base used by the entire application
Base = declarative_base()


# Enums ---------------------------------------------------------

class RoleEnum(str, enum.Enum):
    user = "user"
    admin = "admin"


class PlatformEnum(str, enum.Enum):
    """Advertising networks a campaign can run on or a user can connect."""
    facebook = "facebook"
    google = "google"
    linkedin = "linkedin"
    twitter = "twitter"
    snapchat = "snapchat"
    youtube = "youtube"
    instagram = "instagram"


class LeadSourcePlatformEnum(str, enum.Enum):
    """Where a lead came from; `other` covers organic/manual entry."""
    facebook = "facebook"
    google = "google"
    linkedin = "linkedin"
    twitter = "twitter"
    snapchat = "snapchat"
    youtube = "youtube"
    instagram = "instagram"
    other = "other"


class ObjectiveEnum(str, enum.Enum):
    awareness = "awareness"
    consideration = "consideration"
    conversion = "conversion"
    traffic = "traffic"
    engagement = "engagement"
    app_installs = "app_installs"
    video_views = "video_views"
    lead_generation = "lead_generation"
    messages = "messages"
    sales = "sales"


class CampaignStatusEnum(str, enum.Enum):
    """Caller-driven lifecycle; any value may follow any other."""
    draft = "draft"
    active = "active"
    paused = "paused"
    completed = "completed"
    archived = "archived"


class AllocationStatusEnum(str, enum.Enum):
    """Status of a campaign on one ad platform."""
    pending = "pending"
    active = "active"
    paused = "paused"
    completed = "completed"
    error = "error"


class LeadStatusEnum(str, enum.Enum):
    new = "new"
    contacted = "contacted"
    qualified = "qualified"
    converted = "converted"
    disqualified = "disqualified"


class ConnectionStatusEnum(str, enum.Enum):
    active = "active"
    expired = "expired"
    revoked = "revoked"


# Core models ----------------------------------------------------

class User(Base):
    """A person who signs in and owns campaigns, leads and platform connections.

    Role `admin` may read and modify any single campaign or lead by id; list
    endpoints stay scoped to the caller's own records for every role.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(Enum(RoleEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=RoleEnum.user)
    company = Column(String, nullable=True)

    # Password reset (token stored as a SHA-256 digest)
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 1:1 credential for local password-based auth
    credential = relationship("AuthCredential", back_populates="user", uselist=False, cascade="all, delete-orphan")
    platform_connections = relationship("PlatformConnection", back_populates="user", cascade="all, delete-orphan")

    def __str__(self):
        return f"{self.name} ({self.email})"


class AuthCredential(Base):
    """Password hash for a user, kept apart from profile data."""
    __tablename__ = "auth_credentials"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="credential")


class Campaign(Base):
    """An advertising campaign owned by exactly one user.

    `platforms` holds one allocation per ad network the campaign runs on, each
    with its own metrics. Totals across platforms are derived on read
    (see services/metrics.py) and never stored.
    """
    __tablename__ = "campaigns"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    objective = Column(Enum(ObjectiveEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    status = Column(
        Enum(CampaignStatusEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=CampaignStatusEnum.draft,
    )
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    budget_total = Column(Float, nullable=False)
    budget_daily = Column(Float, nullable=True)
    budget_currency = Column(String, nullable=False, default="USD")

    # Free-form sub-documents
    target_audience = Column(JSON, nullable=True)
    ad_creatives = Column(JSON, nullable=False, default=list)
    team = Column(JSON, nullable=False, default=list)  # user ids (strings); association only, no write rights
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    # Owner never changes after creation
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("User")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    platforms = relationship(
        "CampaignPlatform",
        back_populates="campaign",
        order_by="CampaignPlatform.position",
        cascade="all, delete-orphan",
    )
    # No delete cascade: deleting a campaign nulls Lead.campaign_id (orphaned leads are kept)
    leads = relationship("Lead", back_populates="campaign", order_by="Lead.created_at")

    @property
    def budget(self) -> dict:
        return {"total": self.budget_total, "daily": self.budget_daily, "currency": self.budget_currency}

    @property
    def lead_ids(self) -> list:
        return [lead.id for lead in self.leads]

    def platform(self, name) -> "CampaignPlatform | None":
        """Return the allocation for platform `name`, if the campaign runs there."""
        name = PlatformEnum(name)
        for allocation in self.platforms:
            if allocation.name == name:
                return allocation
        return None

    def __str__(self):
        return f"{self.name} ({self.status.value if self.status else 'draft'})"


class CampaignPlatform(Base):
    """One ad network a campaign runs on, with the metrics last reported there."""
    __tablename__ = "campaign_platforms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    name = Column(Enum(PlatformEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    status = Column(
        Enum(AllocationStatusEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=AllocationStatusEnum.pending,
    )
    platform_campaign_id = Column(String, nullable=True)  # id on the external platform
    budget = Column(Float, nullable=False)

    impressions = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)
    conversions = Column(Integer, nullable=False, default=0)
    spend = Column(Float, nullable=False, default=0)
    ctr = Column(Float, nullable=False, default=0)
    cpc = Column(Float, nullable=False, default=0)
    cpm = Column(Float, nullable=False, default=0)
    cost_per_conversion = Column(Float, nullable=False, default=0)

    last_updated = Column(DateTime, default=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="platforms")

    @property
    def metrics(self) -> dict:
        return {
            "impressions": self.impressions or 0,
            "clicks": self.clicks or 0,
            "conversions": self.conversions or 0,
            "spend": self.spend or 0,
            "ctr": self.ctr or 0,
            "cpc": self.cpc or 0,
            "cpm": self.cpm or 0,
            "cost_per_conversion": self.cost_per_conversion or 0,
        }

    def __str__(self):
        return f"{self.name.value} allocation ({self.status.value if self.status else 'pending'})"


class Lead(Base):
    """A potential customer attributed to a campaign and source platform."""
    __tablename__ = "leads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=True)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    status = Column(
        Enum(LeadStatusEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=LeadStatusEnum.new,
    )

    # Source attribution
    source_platform = Column(Enum(LeadSourcePlatformEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    # Required at creation; becomes NULL if the campaign is later deleted
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True)
    source_ad_creative = Column(String, nullable=True)
    source_landing_page = Column(String, nullable=True)

    additional_info = Column(JSON, nullable=False, default=dict)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    assigned_to_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="leads")

    @property
    def source(self) -> dict:
        campaign = None
        if self.campaign is not None:
            campaign = {"id": self.campaign.id, "name": self.campaign.name}
        return {
            "platform": self.source_platform,
            "campaign": campaign,
            "ad_creative": self.source_ad_creative,
            "landing_page": self.source_landing_page,
        }

    def __str__(self):
        return f"{self.first_name} {self.last_name or ''} <{self.email}>".replace("  ", " ")


class PlatformConnection(Base):
    """Stored credential granting API access to a user's ad account on one platform.

    At most one row per (user, platform): reconnecting updates the row in place,
    disconnecting marks it `revoked`. Tokens are stored Fernet-encrypted
    (see security.encrypt_secret).
    """
    __tablename__ = "platform_connections"
    __table_args__ = (UniqueConstraint("user_id", "platform", name="uq_platform_connection_user_platform"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(Enum(PlatformEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)

    access_token_enc = Column(String, nullable=False)
    refresh_token_enc = Column(String, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    account_id = Column(String, nullable=True)
    account_name = Column(String, nullable=True)
    status = Column(
        Enum(ConnectionStatusEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=ConnectionStatusEnum.active,
    )
    # `metadata` is reserved on declarative classes
    connection_metadata = Column("metadata", JSON, nullable=False, default=dict)

    connected_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="platform_connections")

    @property
    def connected(self) -> bool:
        return self.status == ConnectionStatusEnum.active

    def __str__(self):
        return f"{self.platform.value} connection ({self.status.value if self.status else 'active'})"
