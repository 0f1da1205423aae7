"""Ad-platform API clients (Facebook, Google, LinkedIn)."""

from .base import AdPlatformClient, CampaignSpec, PlatformAuthError
from .facebook_ads_client import FacebookAdsClient
from .google_ads_client import GoogleAdsClient
from .linkedin_ads_client import LinkedInAdsClient

__all__ = [
    "AdPlatformClient",
    "CampaignSpec",
    "PlatformAuthError",
    "FacebookAdsClient",
    "GoogleAdsClient",
    "LinkedInAdsClient",
]
