"""Analytics endpoints.

WHAT:
    Dashboard summary, lead analytics and the per-campaign performance
    series, each scoped to the caller's records (admins see everything).

WHY:
    Reports are assembled in `services.analytics_service`; payloads are
    already in wire (camelCase) shape, so they pass through as plain dicts.
"""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_current_user
from ..models import User
from ..services import analytics_service

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        403: {"model": schemas.ErrorResponse, "description": "Forbidden"},
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
    },
)


@router.get(
    "/dashboard",
    response_model=schemas.DataResponse[Dict[str, Any]],
    summary="Dashboard summary",
    description="""
    Returns `campaignStats`, `leadStats`, `performanceMetrics`,
    `recentCampaigns` (5 newest) and `recentLeads` (5 newest).
    Ratios are 0 when their denominator is 0.
    """,
)
def get_dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": analytics_service.dashboard(db, current_user)}


@router.get(
    "/campaigns/{campaign_id}/performance",
    response_model=schemas.DataResponse[Dict[str, Any]],
    summary="Campaign performance over time",
    description="Seven labeled periods with overall and per-platform metric arrays.",
)
def get_campaign_performance(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"success": True, "data": analytics_service.campaign_performance(db, current_user, campaign_id)}


@router.get(
    "/leads",
    response_model=schemas.DataResponse[Dict[str, Any]],
    summary="Lead analytics",
    description="""
    Returns `leadsByCampaign` (top 10), `leadsByDate` (last 30 days, zero
    filled) and `conversionRatesByPlatform`.
    """,
)
def get_lead_analytics(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": analytics_service.lead_analytics(db, current_user)}
