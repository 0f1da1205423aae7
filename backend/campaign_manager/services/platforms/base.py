"""Shared HTTP plumbing for the ad-platform clients.

WHAT:
    `AdPlatformClient` wraps one `httpx.Client` and turns transport failures
    and non-2xx responses into `UpstreamPlatformError`s whose message embeds
    the upstream reason ("Failed to create Facebook campaign: ...").

WHY:
    The per-platform clients only map field names and enums; error handling
    and the injectable transport (used by tests) live here once.

Clients are thin pass-throughs: one HTTP call per operation, no retries
(except Google's single refresh-then-retry, see google_ads_client.py).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ...errors import UpstreamPlatformError

logger = logging.getLogger(__name__)


class PlatformAuthError(UpstreamPlatformError):
    """Upstream rejected the access token (HTTP 401)."""


@dataclass
class CampaignSpec:
    """Platform-neutral view of a local campaign, as sent on publish."""

    name: str
    objective: str
    status: str
    budget_total: float
    budget_daily: Optional[float]
    currency: str
    start_date: datetime
    end_date: datetime

    @classmethod
    def from_campaign(cls, campaign) -> "CampaignSpec":
        return cls(
            name=campaign.name,
            objective=campaign.objective.value,
            status=campaign.status.value,
            budget_total=campaign.budget_total,
            budget_daily=campaign.budget_daily,
            currency=campaign.budget_currency or "USD",
            start_date=campaign.start_date,
            end_date=campaign.end_date,
        )


def _error_reason(response: httpx.Response) -> str:
    """Best-effort human message from an upstream error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if body.get("message"):
            return str(body["message"])
    return f"HTTP {response.status_code}"


class AdPlatformClient:
    """Base class: one authenticated httpx session against one platform."""

    platform: str = ""
    label: str = ""
    log_tag: str = "[PLATFORM_CLIENT]"

    def __init__(
        self,
        access_token: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not access_token:
            raise ValueError(f"{self.label} access token is required")
        self.access_token = access_token
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        return {}

    def _send(self, method: str, url: str, *, action: str, **kwargs: Any) -> Dict[str, Any]:
        """Perform one request and return the decoded JSON body.

        Args:
            action: verb phrase for error messages, e.g. "create Facebook campaign".

        Raises:
            PlatformAuthError: upstream answered 401.
            UpstreamPlatformError: network failure or any other non-2xx answer.
        """
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", self.log_tag, action, exc)
            raise UpstreamPlatformError(f"Failed to {action}: {exc}", platform=self.platform) from exc

        if response.status_code == 401:
            reason = _error_reason(response)
            logger.warning("%s %s unauthorized: %s", self.log_tag, action, reason)
            raise PlatformAuthError(f"Failed to {action}: {reason}", platform=self.platform, upstream_status=401)
        if response.is_error:
            reason = _error_reason(response)
            logger.error("%s %s failed (%d): %s", self.log_tag, action, response.status_code, reason)
            raise UpstreamPlatformError(
                f"Failed to {action}: {reason}",
                platform=self.platform,
                upstream_status=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamPlatformError(f"Failed to {action}: invalid JSON response", platform=self.platform) from exc


def to_int(value: Any) -> int:
    """Upstream counters arrive as strings or floats ("12", "3.0")."""
    try:
        return int(float(value or 0))
    except (TypeError, ValueError):
        return 0


def to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
