"""Read-only analytics reports scoped to the requesting user.

WHAT:
    - dashboard: campaign/lead counts, summed platform metrics, recent records
    - lead analytics: top campaigns by leads, dense 30-day series, per-platform funnel
    - campaign performance: fixed illustrative 7-period series

WHY:
    Aggregations run in SQL (GROUP BY) where the store can do them; ratios use
    `metrics.safe_div` so every zero denominator yields 0.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Campaign, CampaignPlatform, CampaignStatusEnum, Lead, User
from ..utils.dates import utcnow
from .campaign_service import get_campaign
from .metrics import MetricTotals, safe_div, total_metrics

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
TOP_CAMPAIGNS_LIMIT = 10
DAILY_SERIES_DAYS = 30


def _value(enum_or_str) -> Optional[str]:
    return getattr(enum_or_str, "value", enum_or_str)


def dashboard(db: Session, principal: User) -> dict:
    """Summary for the home screen."""
    campaigns = db.query(Campaign).filter(Campaign.owner_id == principal.id)
    total_campaigns = campaigns.count()
    active_campaigns = campaigns.filter(Campaign.status == CampaignStatusEnum.active).count()

    leads = db.query(Lead).filter(Lead.owner_id == principal.id)
    total_leads = leads.count()

    by_status = (
        db.query(Lead.status, func.count(Lead.id))
        .filter(Lead.owner_id == principal.id)
        .group_by(Lead.status)
        .all()
    )
    by_platform = (
        db.query(Lead.source_platform, func.count(Lead.id))
        .filter(Lead.owner_id == principal.id)
        .group_by(Lead.source_platform)
        .all()
    )

    sums = (
        db.query(
            func.coalesce(func.sum(CampaignPlatform.impressions), 0),
            func.coalesce(func.sum(CampaignPlatform.clicks), 0),
            func.coalesce(func.sum(CampaignPlatform.conversions), 0),
            func.coalesce(func.sum(CampaignPlatform.spend), 0),
        )
        .select_from(CampaignPlatform)
        .join(Campaign, CampaignPlatform.campaign_id == Campaign.id)
        .filter(Campaign.owner_id == principal.id)
        .one()
    )
    totals = MetricTotals()
    totals.add(*sums)

    recent_campaigns = campaigns.order_by(Campaign.created_at.desc()).limit(RECENT_LIMIT).all()
    recent_leads = leads.order_by(Lead.created_at.desc()).limit(RECENT_LIMIT).all()

    return {
        "campaignStats": {"active": active_campaigns, "total": total_campaigns},
        "leadStats": {
            "total": total_leads,
            "byStatus": [{"status": _value(status), "count": count} for status, count in by_status],
            "byPlatform": [{"platform": _value(platform), "count": count} for platform, count in by_platform],
        },
        "performanceMetrics": {
            "totalSpend": totals.spend,
            "totalImpressions": totals.impressions,
            "totalClicks": totals.clicks,
            "totalConversions": totals.conversions,
            "overallCTR": totals.ctr,
            "overallCPC": totals.cpc,
            "overallCPM": totals.cpm,
            "overallCPL": safe_div(totals.spend, total_leads),
        },
        "recentCampaigns": [_recent_campaign(c) for c in recent_campaigns],
        "recentLeads": [_recent_lead(lead) for lead in recent_leads],
    }


def _recent_campaign(campaign: Campaign) -> dict:
    return {
        "id": str(campaign.id),
        "name": campaign.name,
        "status": campaign.status.value,
        "startDate": campaign.start_date.isoformat() if campaign.start_date else None,
        "endDate": campaign.end_date.isoformat() if campaign.end_date else None,
        "budget": {"total": campaign.budget_total},
        "totalMetrics": _camel_metrics(total_metrics(campaign.platforms)),
    }


def _recent_lead(lead: Lead) -> dict:
    campaign = None
    if lead.campaign is not None:
        campaign = {"id": str(lead.campaign.id), "name": lead.campaign.name}
    return {
        "id": str(lead.id),
        "firstName": lead.first_name,
        "lastName": lead.last_name,
        "email": lead.email,
        "status": lead.status.value,
        "source": {"platform": lead.source_platform.value, "campaign": campaign},
        "createdAt": lead.created_at.isoformat() if lead.created_at else None,
    }


def _camel_metrics(totals: MetricTotals) -> dict:
    return {
        "impressions": totals.impressions,
        "clicks": totals.clicks,
        "conversions": totals.conversions,
        "spend": totals.spend,
        "ctr": totals.ctr,
        "cpc": totals.cpc,
        "cpm": totals.cpm,
        "costPerConversion": totals.cost_per_conversion,
    }


def daily_series(counts: Dict[date, int], today: date, days: int = DAILY_SERIES_DAYS) -> List[dict]:
    """Dense ascending series of `days` entries ending at `today`; missing days count 0."""
    start = today - timedelta(days=days - 1)
    return [
        {"date": (start + timedelta(days=offset)).isoformat(), "count": counts.get(start + timedelta(days=offset), 0)}
        for offset in range(days)
    ]


def lead_analytics(db: Session, principal: User, *, today: Optional[date] = None) -> dict:
    """Lead generation report: top campaigns, daily counts and per-platform funnel."""
    today = today or utcnow().date()

    top_campaigns = (
        db.query(Campaign.id, Campaign.name, func.count(Lead.id).label("lead_count"))
        .join(Lead, Lead.campaign_id == Campaign.id)
        .filter(Lead.owner_id == principal.id)
        .group_by(Campaign.id, Campaign.name)
        .order_by(func.count(Lead.id).desc(), Campaign.name)
        .limit(TOP_CAMPAIGNS_LIMIT)
        .all()
    )

    # Bucketing by day happens in Python so SQLite and Postgres behave the same
    window_start = datetime.combine(today - timedelta(days=DAILY_SERIES_DAYS - 1), time.min)
    created = (
        db.query(Lead.created_at)
        .filter(Lead.owner_id == principal.id, Lead.created_at >= window_start)
        .all()
    )
    counts: Dict[date, int] = {}
    for (created_at,) in created:
        day = created_at.date()
        counts[day] = counts.get(day, 0) + 1

    funnel_rows = (
        db.query(
            CampaignPlatform.name,
            func.coalesce(func.sum(CampaignPlatform.impressions), 0),
            func.coalesce(func.sum(CampaignPlatform.clicks), 0),
            func.coalesce(func.sum(CampaignPlatform.conversions), 0),
            func.coalesce(func.sum(CampaignPlatform.spend), 0),
        )
        .select_from(CampaignPlatform)
        .join(Campaign, CampaignPlatform.campaign_id == Campaign.id)
        .filter(Campaign.owner_id == principal.id)
        .group_by(CampaignPlatform.name)
        .all()
    )
    funnel = []
    for name, impressions, clicks, conversions, spend in funnel_rows:
        totals = MetricTotals()
        totals.add(impressions, clicks, conversions, spend)
        funnel.append({
            "platform": _value(name),
            "impressions": totals.impressions,
            "clicks": totals.clicks,
            "conversions": totals.conversions,
            "spend": totals.spend,
            "ctr": totals.ctr,
            "conversionRate": totals.conversion_rate,
            "costPerConversion": totals.cost_per_conversion,
        })

    return {
        "leadsByCampaign": [
            {"campaignId": str(campaign_id), "campaignName": name, "count": count}
            for campaign_id, name, count in top_campaigns
        ],
        "leadsByDate": daily_series(counts, today),
        "conversionRatesByPlatform": funnel,
    }


PERFORMANCE_TIMEFRAMES = [f"Day {n}" for n in range(1, 8)]
PERFORMANCE_METRICS = {
    "impressions": [1200, 1500, 1800, 2100, 2400, 2700, 3000],
    "clicks": [120, 150, 180, 210, 240, 270, 300],
    "conversions": [12, 15, 18, 21, 24, 27, 30],
    "spend": [50, 60, 70, 80, 90, 100, 110],
    "ctr": [10, 10, 10, 10, 10, 10, 10],
    "cpc": [0.42, 0.4, 0.39, 0.38, 0.38, 0.37, 0.37],
    "cpm": [41.67, 40.0, 38.89, 38.1, 37.5, 37.04, 36.67],
}
PERFORMANCE_PLATFORMS = {
    "facebook": {
        "impressions": [600, 750, 900, 1050, 1200, 1350, 1500],
        "clicks": [60, 75, 90, 105, 120, 135, 150],
        "conversions": [6, 8, 9, 11, 12, 14, 15],
        "spend": [25, 30, 35, 40, 45, 50, 55],
    },
    "google": {
        "impressions": [400, 500, 600, 700, 800, 900, 1000],
        "clicks": [40, 50, 60, 70, 80, 90, 100],
        "conversions": [4, 5, 6, 7, 8, 9, 10],
        "spend": [15, 20, 25, 30, 35, 40, 45],
    },
    "linkedin": {
        "impressions": [200, 250, 300, 350, 400, 450, 500],
        "clicks": [20, 25, 30, 35, 40, 45, 50],
        "conversions": [2, 2, 3, 3, 4, 4, 5],
        "spend": [10, 10, 10, 10, 10, 10, 10],
    },
}


def campaign_performance(db: Session, principal: User, campaign_id: UUID) -> dict:
    """Illustrative performance-over-time series for a campaign.

    No metric history is stored, so the series is fixed; only the campaign
    lookup and ownership check are real.
    """
    get_campaign(db, principal, campaign_id)
    return {
        "timeframes": list(PERFORMANCE_TIMEFRAMES),
        "metrics": {key: list(values) for key, values in PERFORMANCE_METRICS.items()},
        "platforms": {
            name: {key: list(values) for key, values in series.items()}
            for name, series in PERFORMANCE_PLATFORMS.items()
        },
    }
