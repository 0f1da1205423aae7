"""Google Ads REST client with a single token refresh.

WHAT:
    Create a campaign, read metrics through GAQL search, and change status on
    a Google Ads customer account.

WHY:
    Google access tokens live for one hour. On a 401 the client refreshes the
    token once through the OAuth endpoint and retries the call once; the new
    token is handed to `on_token_refresh` so the caller can persist it.
    Money values are micros (1e6).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import httpx

from ...errors import UpstreamPlatformError
from .base import AdPlatformClient, CampaignSpec, PlatformAuthError, to_float, to_int

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
MICROS = 1_000_000

CHANNEL_TYPE_MAP = {
    "awareness": "DISPLAY",
    "consideration": "SEARCH",
    "conversion": "PERFORMANCE_MAX",
    "traffic": "SEARCH",
    "engagement": "DISPLAY",
    "app_installs": "APP",
    "video_views": "VIDEO",
    "lead_generation": "PERFORMANCE_MAX",
    "messages": "DISPLAY",
    "sales": "SHOPPING",
}
DEFAULT_CHANNEL_TYPE = "SEARCH"

CREATE_STATUS_MAP = {
    "active": "ENABLED",
    "paused": "PAUSED",
    "draft": "PAUSED",
    "completed": "PAUSED",
    "archived": "REMOVED",
}
UPDATE_STATUS_MAP = {
    "active": "ENABLED",
    "paused": "PAUSED",
    "completed": "PAUSED",
    "archived": "REMOVED",
}
DEFAULT_STATUS = "PAUSED"

METRICS_QUERY = """
    SELECT
      campaign.id,
      metrics.impressions,
      metrics.clicks,
      metrics.conversions,
      metrics.cost_micros,
      metrics.ctr,
      metrics.average_cpc,
      metrics.average_cpm
    FROM campaign
    WHERE campaign.id = {campaign_id}
"""

R = TypeVar("R")


class GoogleAdsClient(AdPlatformClient):
    """Google Ads REST wrapper authenticated with OAuth access + refresh tokens."""

    platform = "google"
    label = "Google"
    log_tag = "[GOOGLE_CLIENT]"

    def __init__(
        self,
        access_token: str,
        *,
        refresh_token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        developer_token: Optional[str] = None,
        api_version: str = "v14",
        on_token_refresh: Optional[Callable[[str], None]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(access_token, timeout=timeout, transport=transport)
        self.refresh_token = refresh_token
        self.client_id = client_id
        self.client_secret = client_secret
        self.developer_token = developer_token
        self.on_token_refresh = on_token_refresh
        self.base_url = f"https://googleads.googleapis.com/{api_version}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if self.developer_token:
            headers["developer-token"] = self.developer_token
        return headers

    def refresh_access_token(self) -> str:
        """Exchange the refresh token for a new access token."""
        if not self.refresh_token:
            raise UpstreamPlatformError("Failed to refresh Google access token: no refresh token", platform=self.platform)
        data = self._send(
            "POST",
            TOKEN_URL,
            action="refresh Google access token",
            data={
                "client_id": self.client_id or "",
                "client_secret": self.client_secret or "",
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        token = data.get("access_token")
        if not token:
            raise UpstreamPlatformError("Failed to refresh Google access token: no access_token in response", platform=self.platform)
        self.access_token = token
        logger.info("[GOOGLE_CLIENT] Access token refreshed")
        if self.on_token_refresh is not None:
            self.on_token_refresh(token)
        return token

    def _with_refresh(self, call: Callable[[], R]) -> R:
        """Run `call`; on a 401 refresh the token once and retry once."""
        try:
            return call()
        except PlatformAuthError:
            logger.info("[GOOGLE_CLIENT] 401 received, refreshing token and retrying once")
            self.refresh_access_token()
            return call()

    def create_campaign(self, spec: CampaignSpec, account_id: str) -> str:
        """Create the campaign under customer `account_id`; returns the numeric campaign id."""
        amount = spec.budget_daily if spec.budget_daily else spec.budget_total
        body = {
            "name": spec.name,
            "status": CREATE_STATUS_MAP.get(spec.status, DEFAULT_STATUS),
            "advertisingChannelType": CHANNEL_TYPE_MAP.get(spec.objective, DEFAULT_CHANNEL_TYPE),
            "campaignBudget": {
                "amountMicros": amount * MICROS,
                "deliveryMethod": "STANDARD" if spec.budget_daily else "ACCELERATED",
            },
            "startDate": spec.start_date.strftime("%Y%m%d"),
            "endDate": spec.end_date.strftime("%Y%m%d"),
        }
        data = self._with_refresh(
            lambda: self._send(
                "POST",
                f"{self.base_url}/customers/{account_id}/campaigns",
                action="create Google campaign",
                json=body,
            )
        )
        resource_name = data.get("resourceName") or ""
        campaign_id = resource_name.split("/")[-1]
        if not campaign_id:
            raise UpstreamPlatformError("Failed to create Google campaign: no resourceName in response", platform=self.platform)
        logger.info("[GOOGLE_CLIENT] Created campaign %s for customer %s", campaign_id, account_id)
        return campaign_id

    def get_metrics(self, platform_campaign_id: str, account_id: Optional[str] = None) -> Dict[str, Any]:
        data = self._with_refresh(
            lambda: self._send(
                "POST",
                f"{self.base_url}/customers/{account_id}/googleAds:search",
                action="get Google campaign metrics",
                json={"query": METRICS_QUERY.format(campaign_id=platform_campaign_id)},
            )
        )
        results = data.get("results") or []
        metrics = (results[0] if results else {}).get("metrics") or {}
        return {
            "impressions": to_int(metrics.get("impressions")),
            "clicks": to_int(metrics.get("clicks")),
            "conversions": to_int(metrics.get("conversions")),
            "spend": to_float(metrics.get("cost_micros")) / MICROS,
            "ctr": to_float(metrics.get("ctr")) * 100,
            "cpc": to_float(metrics.get("average_cpc")) / MICROS,
            "cpm": to_float(metrics.get("average_cpm")) / MICROS,
        }

    def update_status(self, platform_campaign_id: str, status: str, account_id: Optional[str] = None) -> bool:
        self._with_refresh(
            lambda: self._send(
                "PATCH",
                f"{self.base_url}/customers/{account_id}/campaigns/{platform_campaign_id}",
                action="update Google campaign status",
                json={"status": UPDATE_STATUS_MAP.get(status, DEFAULT_STATUS)},
            )
        )
        return True
