"""LinkedIn Marketing API client.

Create a campaign under a sponsored account, read its analytics, change its
status, and pull lead-gen form submissions. Budgets go out in cents, dates
as epoch milliseconds.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from .base import AdPlatformClient, CampaignSpec, to_float, to_int

logger = logging.getLogger(__name__)

API_URL = "https://api.linkedin.com/v2"

OBJECTIVE_MAP = {
    "awareness": "BRAND_AWARENESS",
    "consideration": "WEBSITE_VISITS",
    "conversion": "LEAD_GENERATION",
    "traffic": "WEBSITE_VISITS",
    "engagement": "ENGAGEMENT",
    "video_views": "VIDEO_VIEWS",
    "lead_generation": "LEAD_GENERATION",
    "messages": "MESSAGE_AD",
    "sales": "WEBSITE_CONVERSIONS",
}
DEFAULT_OBJECTIVE = "WEBSITE_VISITS"

CREATE_STATUS_MAP = {
    "active": "ACTIVE",
    "paused": "PAUSED",
    "draft": "DRAFT",
    "completed": "COMPLETED",
    "archived": "ARCHIVED",
}
UPDATE_STATUS_MAP = {
    "active": "ACTIVE",
    "paused": "PAUSED",
    "completed": "COMPLETED",
    "archived": "ARCHIVED",
}

ANALYTICS_FIELDS = "impressions,clicks,conversions,costInUsd,clickThroughRate,costPerClick,costPer1000Impressions"


def _epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class LinkedInAdsClient(AdPlatformClient):
    platform = "linkedin"
    label = "LinkedIn"
    log_tag = "[LINKEDIN_CLIENT]"

    def __init__(
        self,
        access_token: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(access_token, timeout=timeout, transport=transport)
        self.ads_url = f"{API_URL}/adAccounts"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        }

    def create_campaign(self, spec: CampaignSpec, account_id: str) -> str:
        currency = spec.currency or "USD"
        unit = spec.budget_daily if spec.budget_daily else spec.budget_total
        daily = spec.budget_daily if spec.budget_daily else spec.budget_total / 30
        body = {
            "account": f"urn:li:sponsoredAccount:{account_id}",
            "name": spec.name,
            "status": CREATE_STATUS_MAP.get(spec.status, "DRAFT"),
            "objectiveType": OBJECTIVE_MAP.get(spec.objective, DEFAULT_OBJECTIVE),
            "costType": "CPC",
            "unitCost": {"amount": unit * 100, "currencyCode": currency},
            "dailyBudget": {"amount": daily * 100, "currencyCode": currency},
            "totalBudget": {"amount": spec.budget_total * 100, "currencyCode": currency},
            "startDate": _epoch_ms(spec.start_date),
            "endDate": _epoch_ms(spec.end_date),
        }
        data = self._send(
            "POST",
            f"{self.ads_url}/{account_id}/campaigns",
            action="create LinkedIn campaign",
            json=body,
        )
        logger.info("[LINKEDIN_CLIENT] Created campaign %s in account %s", data.get("id"), account_id)
        return str(data["id"])

    def get_metrics(self, platform_campaign_id: str, account_id: Optional[str] = None) -> Dict[str, Any]:
        data = self._send(
            "GET",
            f"{self.ads_url}/{account_id}/analytics",
            action="get LinkedIn campaign metrics",
            params={
                "q": "analytics",
                "dateRange.start.day": 1,
                "dateRange.start.month": 1,
                "dateRange.start.year": 2020,
                "dateRange.end.day": 31,
                "dateRange.end.month": 12,
                "dateRange.end.year": 2030,
                "campaigns[0]": f"urn:li:sponsoredCampaign:{platform_campaign_id}",
                "fields": ANALYTICS_FIELDS,
            },
        )
        elements = data.get("elements") or []
        row = elements[0] if elements else {}
        return {
            "impressions": to_int(row.get("impressions")),
            "clicks": to_int(row.get("clicks")),
            "conversions": to_int(row.get("conversions")),
            "spend": to_float(row.get("costInUsd")),
            "ctr": to_float(row.get("clickThroughRate")) * 100,
            "cpc": to_float(row.get("costPerClick")),
            "cpm": to_float(row.get("costPer1000Impressions")),
        }

    def update_status(self, platform_campaign_id: str, status: str, account_id: Optional[str] = None) -> bool:
        self._send(
            "PATCH",
            f"{self.ads_url}/{account_id}/campaigns/{platform_campaign_id}",
            action="update LinkedIn campaign status",
            json={"status": UPDATE_STATUS_MAP.get(status, "PAUSED")},
        )
        return True

    def get_leads(self, form_id: str) -> List[Dict[str, Any]]:
        data = self._send(
            "GET",
            f"{API_URL}/leadGenForms/{form_id}/submissions",
            action="get LinkedIn leads",
        )
        leads = []
        for item in data.get("elements") or []:
            fields = {field["name"]: field.get("value") for field in item.get("fields") or [] if field.get("name")}
            leads.append({
                "platform_lead_id": item.get("id"),
                "first_name": fields.get("firstName") or "",
                "last_name": fields.get("lastName") or "",
                "email": fields.get("emailAddress") or fields.get("email") or "",
                "phone": fields.get("phoneNumber") or fields.get("phone") or "",
                "created_time": item.get("submittedAt"),
                "campaign_name": item.get("campaignName"),
                "additional_info": fields,
            })
        return leads
