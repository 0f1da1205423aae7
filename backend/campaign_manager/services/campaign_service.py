"""Campaign CRUD with ownership checks.

WHAT:
    Create, list (filtered/sorted/paginated), read, update and delete
    campaigns, plus the per-campaign metrics and leads reads.

WHY:
    Routers stay thin; every ownership and integrity rule for campaigns lives
    here. Owner is always stamped from the principal and never changes.

    Deleting a campaign keeps its leads: their `campaign_id` becomes NULL
    (the lead still counts in lead lists and analytics, just unattributed).
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models import Campaign, CampaignPlatform, CampaignStatusEnum, Lead, ObjectiveEnum, User
from ..schemas import CampaignCreate, CampaignOut, CampaignUpdate, Metrics, PlatformAllocationIn
from ..utils.dates import to_naive_utc, utcnow
from .access import get_accessible, owned_by
from .metrics import total_metrics
from .query_filters import (
    ALL_OPERATORS,
    FieldSpec,
    ListQuery,
    Page,
    ResourceFields,
    SortKey,
    as_datetime,
    as_enum,
    as_float,
    paginate,
)

logger = logging.getLogger(__name__)

CAMPAIGN_FIELDS = ResourceFields(
    filters={
        "name": FieldSpec(Campaign.name),
        "objective": FieldSpec(Campaign.objective, as_enum(ObjectiveEnum)),
        "status": FieldSpec(Campaign.status, as_enum(CampaignStatusEnum)),
        "startDate": FieldSpec(Campaign.start_date, as_datetime, ALL_OPERATORS),
        "endDate": FieldSpec(Campaign.end_date, as_datetime, ALL_OPERATORS),
        "budget.total": FieldSpec(Campaign.budget_total, as_float, ALL_OPERATORS),
        "budget.daily": FieldSpec(Campaign.budget_daily, as_float, ALL_OPERATORS),
        "budget.currency": FieldSpec(Campaign.budget_currency),
        "createdAt": FieldSpec(Campaign.created_at, as_datetime, ALL_OPERATORS),
        "updatedAt": FieldSpec(Campaign.updated_at, as_datetime, ALL_OPERATORS),
    },
    selectable=frozenset({
        "name", "description", "objective", "status", "startDate", "endDate", "budget",
        "targetAudience", "platforms", "adCreatives", "leads", "owner", "team", "tags",
        "notes", "totalMetrics", "createdAt", "updatedAt",
    }),
    default_limit=10,
    default_sort=(SortKey("createdAt", descending=True),),
)

# Columns that may not be cleared by an explicit null in an update body
_REQUIRED_ON_UPDATE = {
    "name", "objective", "status", "start_date", "end_date",
    "platforms", "ad_creatives", "tags",
}


def _build_allocations(platforms: List[PlatformAllocationIn]) -> List[CampaignPlatform]:
    allocations = []
    for position, item in enumerate(platforms):
        metrics = item.metrics or Metrics()
        allocations.append(
            CampaignPlatform(
                position=position,
                name=item.name,
                status=item.status,
                platform_campaign_id=item.platform_campaign_id,
                budget=item.budget,
                impressions=metrics.impressions,
                clicks=metrics.clicks,
                conversions=metrics.conversions,
                spend=metrics.spend,
                ctr=metrics.ctr,
                cpc=metrics.cpc,
                cpm=metrics.cpm,
                cost_per_conversion=metrics.cost_per_conversion,
                last_updated=utcnow(),
            )
        )
    return allocations


def _dump_audience(payload) -> Optional[dict]:
    if payload is None:
        return None
    return payload.model_dump(mode="json", by_alias=True, exclude_none=True)


def create_campaign(db: Session, principal: User, payload: CampaignCreate) -> Campaign:
    """Persist a new campaign owned by `principal`."""
    campaign = Campaign(
        name=payload.name,
        description=payload.description,
        objective=payload.objective,
        status=payload.status,
        start_date=to_naive_utc(payload.start_date),
        end_date=to_naive_utc(payload.end_date),
        budget_total=payload.budget.total,
        budget_daily=payload.budget.daily,
        budget_currency=payload.budget.currency,
        target_audience=_dump_audience(payload.target_audience),
        ad_creatives=payload.ad_creatives,
        team=[str(member) for member in payload.team],
        tags=payload.tags,
        notes=payload.notes,
        owner_id=principal.id,
    )
    campaign.platforms = _build_allocations(payload.platforms)
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    logger.info("[CAMPAIGNS] Created %s for user %s", campaign.id, principal.id)
    return campaign


def list_campaigns(db: Session, principal: User, list_query: ListQuery) -> Page:
    return paginate(owned_by(db, Campaign, principal), list_query, CAMPAIGN_FIELDS)


def get_campaign(db: Session, principal: User, campaign_id: UUID) -> Campaign:
    return get_accessible(db, Campaign, campaign_id, principal, label="campaign")


def update_campaign(
    db: Session,
    principal: User,
    campaign_id: UUID,
    payload: CampaignUpdate,
    *,
    on_status_change: Optional[Callable[[Campaign], None]] = None,
) -> Campaign:
    """Apply a partial update after the ownership check.

    `on_status_change` runs after the commit when the status actually changed
    (used to push the new status to ad platforms).
    """
    campaign = get_campaign(db, principal, campaign_id)
    previous_status = campaign.status
    changes = payload.model_dump(exclude_unset=True)

    for name in _REQUIRED_ON_UPDATE:
        if name in changes and changes[name] is None:
            raise ValidationError(f"{name} cannot be null")

    for name in ("name", "description", "objective", "status", "notes", "ad_creatives", "tags"):
        if name in changes:
            setattr(campaign, name, changes[name])
    if "start_date" in changes:
        campaign.start_date = to_naive_utc(payload.start_date)
    if "end_date" in changes:
        campaign.end_date = to_naive_utc(payload.end_date)
    if "team" in changes:
        campaign.team = [str(member) for member in payload.team or []]
    if "target_audience" in changes:
        campaign.target_audience = _dump_audience(payload.target_audience)
    if "budget" in changes and payload.budget is not None:
        budget = payload.budget.model_dump(exclude_unset=True)
        if "total" in budget:
            if budget["total"] is None:
                raise ValidationError("budget.total cannot be null")
            campaign.budget_total = budget["total"]
        if "daily" in budget:
            campaign.budget_daily = budget["daily"]
        if budget.get("currency"):
            campaign.budget_currency = budget["currency"]
    if "platforms" in changes:
        campaign.platforms = _build_allocations(payload.platforms)

    db.commit()
    db.refresh(campaign)
    logger.info("[CAMPAIGNS] Updated %s (fields=%s)", campaign.id, sorted(changes))

    if on_status_change is not None and campaign.status != previous_status:
        on_status_change(campaign)
    return campaign


def delete_campaign(db: Session, principal: User, campaign_id: UUID) -> None:
    """Delete a campaign; its leads are kept with no campaign attribution."""
    campaign = get_campaign(db, principal, campaign_id)
    orphaned = (
        db.query(Lead)
        .filter(Lead.campaign_id == campaign.id)
        .update({Lead.campaign_id: None}, synchronize_session=False)
    )
    db.delete(campaign)
    db.commit()
    logger.info("[CAMPAIGNS] Deleted %s (%d leads orphaned)", campaign_id, orphaned)


def campaign_metrics(db: Session, principal: User, campaign_id: UUID) -> dict:
    """Per-platform metrics plus their totals for one campaign."""
    campaign = get_campaign(db, principal, campaign_id)
    out = CampaignOut.model_validate(campaign)
    return {
        "campaign_id": campaign.id,
        "name": campaign.name,
        "platforms": out.platforms,
        "total_metrics": Metrics(**total_metrics(campaign.platforms).as_dict()),
    }


def campaign_leads(db: Session, principal: User, campaign_id: UUID) -> List[Lead]:
    """Leads attributed to the campaign, newest first."""
    campaign = get_campaign(db, principal, campaign_id)
    return (
        db.query(Lead)
        .filter(Lead.campaign_id == campaign.id)
        .order_by(Lead.created_at.desc())
        .all()
    )
