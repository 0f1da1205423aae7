"""Initial schema: users, credentials, campaigns, allocations, leads, connections.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None

PLATFORMS = ("facebook", "google", "linkedin", "twitter", "snapchat", "youtube", "instagram")

role_enum = sa.Enum("user", "admin", name="roleenum")
platform_enum = sa.Enum(*PLATFORMS, name="platformenum")
lead_source_platform_enum = sa.Enum(*PLATFORMS, "other", name="leadsourceplatformenum")
objective_enum = sa.Enum(
    "awareness", "consideration", "conversion", "traffic", "engagement",
    "app_installs", "video_views", "lead_generation", "messages", "sales",
    name="objectiveenum",
)
campaign_status_enum = sa.Enum("draft", "active", "paused", "completed", "archived", name="campaignstatusenum")
allocation_status_enum = sa.Enum("pending", "active", "paused", "completed", "error", name="allocationstatusenum")
lead_status_enum = sa.Enum("new", "contacted", "qualified", "converted", "disqualified", name="leadstatusenum")
connection_status_enum = sa.Enum("active", "expired", "revoked", name="connectionstatusenum")
# Already created with campaign_platforms; do not recreate
platform_enum_existing = postgresql.ENUM(*PLATFORMS, name="platformenum", create_type=False)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("company", sa.String(), nullable=True),
        sa.Column("reset_password_token", sa.String(), nullable=True),
        sa.Column("reset_password_expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_reset_password_token", "users", ["reset_password_token"])

    op.create_table(
        "auth_credentials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "campaigns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("objective", objective_enum, nullable=False),
        sa.Column("status", campaign_status_enum, nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("budget_total", sa.Float(), nullable=False),
        sa.Column("budget_daily", sa.Float(), nullable=True),
        sa.Column("budget_currency", sa.String(), nullable=False),
        sa.Column("target_audience", sa.JSON(), nullable=True),
        sa.Column("ad_creatives", sa.JSON(), nullable=False),
        sa.Column("team", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_campaigns_owner_id", "campaigns", ["owner_id"])
    op.create_index("ix_campaigns_created_at", "campaigns", ["created_at"])

    op.create_table(
        "campaign_platforms",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", platform_enum, nullable=False),
        sa.Column("status", allocation_status_enum, nullable=False),
        sa.Column("platform_campaign_id", sa.String(), nullable=True),
        sa.Column("budget", sa.Float(), nullable=False),
        sa.Column("impressions", sa.Integer(), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False),
        sa.Column("conversions", sa.Integer(), nullable=False),
        sa.Column("spend", sa.Float(), nullable=False),
        sa.Column("ctr", sa.Float(), nullable=False),
        sa.Column("cpc", sa.Float(), nullable=False),
        sa.Column("cpm", sa.Float(), nullable=False),
        sa.Column("cost_per_conversion", sa.Float(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_campaign_platforms_campaign_id", "campaign_platforms", ["campaign_id"])

    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("status", lead_status_enum, nullable=False),
        sa.Column("source_platform", lead_source_platform_enum, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True),
        sa.Column("source_ad_creative", sa.String(), nullable=True),
        sa.Column("source_landing_page", sa.String(), nullable=True),
        sa.Column("additional_info", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_leads_email", "leads", ["email"])
    op.create_index("ix_leads_campaign_id", "leads", ["campaign_id"])
    op.create_index("ix_leads_owner_id", "leads", ["owner_id"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    op.create_table(
        "platform_connections",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("platform", platform_enum_existing, nullable=False),
        sa.Column("access_token_enc", sa.String(), nullable=False),
        sa.Column("refresh_token_enc", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("account_id", sa.String(), nullable=True),
        sa.Column("account_name", sa.String(), nullable=True),
        sa.Column("status", connection_status_enum, nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("connected_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("user_id", "platform", name="uq_platform_connection_user_platform"),
    )
    op.create_index("ix_platform_connections_user_id", "platform_connections", ["user_id"])


def downgrade():
    op.drop_table("platform_connections")
    op.drop_table("leads")
    op.drop_table("campaign_platforms")
    op.drop_table("campaigns")
    op.drop_table("auth_credentials")
    op.drop_table("users")
    for enum_type in (
        connection_status_enum,
        lead_status_enum,
        allocation_status_enum,
        campaign_status_enum,
        objective_enum,
        lead_source_platform_enum,
        platform_enum,
        role_enum,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
