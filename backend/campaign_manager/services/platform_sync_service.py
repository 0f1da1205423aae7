"""Campaign operations that go through an ad platform.

WHAT:
    - publish: create the local campaign on a platform, store the external id
    - sync: pull lifetime metrics into the matching allocation
    - push_status: forward a local status change to every published platform
    - fetch_form_leads: read lead-form submissions for the lead import

WHY:
    Keeps routers and the CRUD services free of HTTP client details. Clients
    are built per call from the caller's active connection by
    `PlatformClientFactory`, which tests replace with one using an
    `httpx.MockTransport`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx
from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from ..deps import Settings
from ..errors import UpstreamPlatformError, ValidationError
from ..models import AllocationStatusEnum, Campaign, CampaignPlatform, PlatformConnection, PlatformEnum, User
from ..utils.dates import utcnow
from . import platform_connection_service as connections
from .campaign_service import get_campaign
from .metrics import MetricTotals
from .platforms import AdPlatformClient, CampaignSpec, FacebookAdsClient, GoogleAdsClient, LinkedInAdsClient

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = (PlatformEnum.facebook, PlatformEnum.google, PlatformEnum.linkedin)
LEAD_FORM_PLATFORMS = (PlatformEnum.facebook, PlatformEnum.linkedin)


class PlatformClientFactory:
    """Builds authenticated platform clients from stored connections."""

    def __init__(self, settings: Settings, cipher: Fernet, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.settings = settings
        self.cipher = cipher
        self.transport = transport

    def for_connection(self, db: Session, connection: PlatformConnection) -> AdPlatformClient:
        token = connections.access_token(self.cipher, connection)
        timeout = self.settings.PLATFORM_HTTP_TIMEOUT

        if connection.platform == PlatformEnum.facebook:
            return FacebookAdsClient(
                token,
                api_version=self.settings.FACEBOOK_API_VERSION,
                timeout=timeout,
                transport=self.transport,
            )
        if connection.platform == PlatformEnum.google:
            return GoogleAdsClient(
                token,
                refresh_token=connections.refresh_token(self.cipher, connection),
                client_id=self.settings.GOOGLE_CLIENT_ID,
                client_secret=self.settings.GOOGLE_CLIENT_SECRET,
                developer_token=self.settings.GOOGLE_DEVELOPER_TOKEN,
                api_version=self.settings.GOOGLE_ADS_API_VERSION,
                on_token_refresh=lambda new_token: connections.store_refreshed_access_token(
                    db, self.cipher, connection, new_token
                ),
                timeout=timeout,
                transport=self.transport,
            )
        if connection.platform == PlatformEnum.linkedin:
            return LinkedInAdsClient(token, timeout=timeout, transport=self.transport)
        raise ValidationError(f"{connection.platform.value} has no API integration")


def _supported(platform: PlatformEnum) -> PlatformEnum:
    if platform not in SUPPORTED_PLATFORMS:
        raise ValidationError(f"{platform.value} has no API integration")
    return platform


def _allocation(campaign: Campaign, platform: PlatformEnum) -> CampaignPlatform:
    allocation = campaign.platform(platform)
    if allocation is None:
        raise ValidationError(f"Campaign does not run on {platform.value}")
    return allocation


def publish(db: Session, factory: PlatformClientFactory, principal: User, campaign_id: UUID, platform: PlatformEnum) -> Campaign:
    """Create the campaign on `platform` and record the external id on its allocation."""
    _supported(platform)
    campaign = get_campaign(db, principal, campaign_id)
    allocation = _allocation(campaign, platform)
    if allocation.platform_campaign_id:
        raise ValidationError(f"Campaign is already published on {platform.value}")

    connection = connections.active_connection(db, principal, platform)
    client = factory.for_connection(db, connection)
    try:
        with client:
            external_id = client.create_campaign(CampaignSpec.from_campaign(campaign), connection.account_id)
    except UpstreamPlatformError:
        allocation.status = AllocationStatusEnum.error
        allocation.last_updated = utcnow()
        db.commit()
        raise

    allocation.platform_campaign_id = external_id
    allocation.status = AllocationStatusEnum.active
    allocation.last_updated = utcnow()
    db.commit()
    db.refresh(campaign)
    logger.info("[PLATFORMS] Published campaign %s on %s as %s", campaign.id, platform.value, external_id)
    return campaign


def sync_metrics(db: Session, factory: PlatformClientFactory, principal: User, campaign_id: UUID, platform: PlatformEnum) -> Campaign:
    """Pull lifetime metrics for the allocation on `platform`."""
    _supported(platform)
    campaign = get_campaign(db, principal, campaign_id)
    allocation = _allocation(campaign, platform)
    if not allocation.platform_campaign_id:
        raise ValidationError(f"Campaign is not published on {platform.value}")

    connection = connections.active_connection(db, principal, platform)
    with factory.for_connection(db, connection) as client:
        metrics = client.get_metrics(allocation.platform_campaign_id, connection.account_id)

    apply_metrics(allocation, metrics)
    db.commit()
    db.refresh(campaign)
    logger.info("[PLATFORMS] Synced %s metrics for campaign %s", platform.value, campaign.id)
    return campaign


def apply_metrics(allocation: CampaignPlatform, metrics: Dict[str, Any]) -> None:
    """Store fetched metrics on an allocation; cost per conversion is derived locally."""
    allocation.impressions = metrics.get("impressions", 0)
    allocation.clicks = metrics.get("clicks", 0)
    allocation.conversions = metrics.get("conversions", 0)
    allocation.spend = metrics.get("spend", 0)
    allocation.ctr = metrics.get("ctr", 0)
    allocation.cpc = metrics.get("cpc", 0)
    allocation.cpm = metrics.get("cpm", 0)
    totals = MetricTotals(
        impressions=allocation.impressions,
        clicks=allocation.clicks,
        conversions=allocation.conversions,
        spend=allocation.spend,
    )
    allocation.cost_per_conversion = totals.cost_per_conversion
    allocation.last_updated = utcnow()


def push_status(db: Session, factory: PlatformClientFactory, campaign: Campaign) -> List[str]:
    """Forward the campaign's status to each platform it is published on.

    Uses the owner's connections. Failures are logged and skipped; the
    local update has already been committed. Returns the platforms that
    accepted the change.
    """
    updated = []
    for allocation in campaign.platforms:
        if not allocation.platform_campaign_id or allocation.name not in SUPPORTED_PLATFORMS:
            continue
        try:
            connection = connections.active_connection(db, campaign.owner, allocation.name)
            with factory.for_connection(db, connection) as client:
                client.update_status(allocation.platform_campaign_id, campaign.status.value, connection.account_id)
        except (ValidationError, UpstreamPlatformError) as exc:
            logger.warning(
                "[PLATFORMS] Status push to %s for campaign %s failed: %s",
                allocation.name.value, campaign.id, exc.message,
            )
            continue
        updated.append(allocation.name.value)
    if updated:
        logger.info("[PLATFORMS] Pushed status %s for campaign %s to %s", campaign.status.value, campaign.id, updated)
    return updated


def fetch_form_leads(db: Session, factory: PlatformClientFactory, principal: User, platform: PlatformEnum, form_id: str) -> List[dict]:
    """Submissions of lead form `form_id` on Facebook or LinkedIn."""
    if platform not in LEAD_FORM_PLATFORMS:
        raise ValidationError(f"Lead import is not supported for {platform.value}")
    connection = connections.active_connection(db, principal, platform)
    with factory.for_connection(db, connection) as client:
        return client.get_leads(form_id)
