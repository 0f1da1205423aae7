"""Facebook Marketing API client (Graph API over httpx).

WHAT:
    Create a campaign, read lifetime insights, change status, and pull
    lead-form submissions.

WHY:
    Maps local objective/status values onto Facebook's enums. Budgets go out
    in cents; CTR comes back as a fraction and is converted to a percentage.

REFERENCES:
    https://developers.facebook.com/docs/marketing-api
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import AdPlatformClient, CampaignSpec, to_float, to_int

logger = logging.getLogger(__name__)

OBJECTIVE_MAP = {
    "awareness": "BRAND_AWARENESS",
    "consideration": "REACH",
    "conversion": "CONVERSIONS",
    "traffic": "TRAFFIC",
    "engagement": "POST_ENGAGEMENT",
    "app_installs": "APP_INSTALLS",
    "video_views": "VIDEO_VIEWS",
    "lead_generation": "LEAD_GENERATION",
    "messages": "MESSAGES",
    "sales": "SALES",
}
DEFAULT_OBJECTIVE = "REACH"

CREATE_STATUS_MAP = {
    "active": "ACTIVE",
    "paused": "PAUSED",
    "draft": "PAUSED",
    "completed": "PAUSED",
    "archived": "ARCHIVED",
}
UPDATE_STATUS_MAP = {
    "active": "ACTIVE",
    "paused": "PAUSED",
    "completed": "PAUSED",
    "archived": "ARCHIVED",
}
DEFAULT_STATUS = "PAUSED"

CONVERSION_ACTION_TYPES = {"offsite_conversion", "lead", "purchase"}


class FacebookAdsClient(AdPlatformClient):
    """Thin Graph API wrapper authenticated with a user access token.

    Usage:
        with FacebookAdsClient(access_token) as client:
            campaign_id = client.create_campaign(spec, ad_account_id)
            metrics = client.get_metrics(campaign_id)
    """

    platform = "facebook"
    label = "Facebook"
    log_tag = "[FACEBOOK_CLIENT]"

    def __init__(
        self,
        access_token: str,
        *,
        api_version: str = "v18.0",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(access_token, timeout=timeout, transport=transport)
        self.base_url = f"https://graph.facebook.com/{api_version}"

    def _params(self, **extra: Any) -> Dict[str, Any]:
        return {"access_token": self.access_token, **extra}

    def create_campaign(self, spec: CampaignSpec, account_id: str) -> str:
        """Create the campaign under ad account `account_id`; returns Facebook's campaign id."""
        body: Dict[str, Any] = {
            "name": spec.name,
            "objective": OBJECTIVE_MAP.get(spec.objective, DEFAULT_OBJECTIVE),
            "status": CREATE_STATUS_MAP.get(spec.status, DEFAULT_STATUS),
            "special_ad_categories": [],
            "start_time": spec.start_date.strftime("%Y-%m-%d"),
            "end_time": spec.end_date.strftime("%Y-%m-%d"),
        }
        if spec.budget_daily:
            body["daily_budget"] = spec.budget_daily * 100
        else:
            body["lifetime_budget"] = spec.budget_total * 100

        data = self._send(
            "POST",
            f"{self.base_url}/act_{account_id}/campaigns",
            action="create Facebook campaign",
            params=self._params(),
            json=body,
        )
        logger.info("[FACEBOOK_CLIENT] Created campaign %s in act_%s", data.get("id"), account_id)
        return str(data["id"])

    def get_metrics(self, platform_campaign_id: str, account_id: Optional[str] = None) -> Dict[str, Any]:
        """Lifetime insights for one campaign."""
        data = self._send(
            "GET",
            f"{self.base_url}/{platform_campaign_id}/insights",
            action="get Facebook campaign metrics",
            params=self._params(
                fields="impressions,clicks,spend,ctr,cpc,actions",
                date_preset="lifetime",
                level="campaign",
            ),
        )
        rows = data.get("data") or []
        row = rows[0] if rows else {}

        conversions = sum(
            to_int(action.get("value"))
            for action in row.get("actions") or []
            if action.get("action_type") in CONVERSION_ACTION_TYPES
        )
        return {
            "impressions": to_int(row.get("impressions")),
            "clicks": to_int(row.get("clicks")),
            "conversions": conversions,
            "spend": to_float(row.get("spend")),
            "ctr": to_float(row.get("ctr")) * 100,
            "cpc": to_float(row.get("cpc")),
            "cpm": to_float(row.get("cpm")),
        }

    def update_status(self, platform_campaign_id: str, status: str, account_id: Optional[str] = None) -> bool:
        data = self._send(
            "POST",
            f"{self.base_url}/{platform_campaign_id}",
            action="update Facebook campaign status",
            params=self._params(),
            json={"status": UPDATE_STATUS_MAP.get(status, DEFAULT_STATUS)},
        )
        return bool(data.get("success", True))

    def get_leads(self, form_id: str) -> List[Dict[str, Any]]:
        """Submissions of a lead form, normalized to lead fields."""
        data = self._send(
            "GET",
            f"{self.base_url}/{form_id}/leads",
            action="get Facebook leads",
            params=self._params(fields="created_time,field_data,campaign_name,platform,ad_name"),
        )
        leads = []
        for item in data.get("data") or []:
            fields = {
                field["name"]: (field.get("values") or [None])[0]
                for field in item.get("field_data") or []
                if field.get("name")
            }
            leads.append({
                "platform_lead_id": item.get("id"),
                "first_name": fields.get("first_name") or fields.get("firstname") or "",
                "last_name": fields.get("last_name") or fields.get("lastname") or "",
                "email": fields.get("email") or "",
                "phone": fields.get("phone_number") or fields.get("phone") or "",
                "created_time": item.get("created_time"),
                "campaign_name": item.get("campaign_name"),
                "ad_name": item.get("ad_name"),
                "additional_info": fields,
            })
        return leads
