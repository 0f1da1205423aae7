"""Campaign endpoints.

WHAT:
    CRUD over the caller's campaigns (admins may act on any single campaign
    by id; the list stays scoped to the caller), per-campaign
    metrics and leads, and the publish/sync operations that go through an
    ad platform connection.

WHY:
    Routers stay thin: ownership, filtering and platform calls live in
    `services.campaign_service` and `services.platform_sync_service`.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_current_user, get_platform_clients
from ..models import User
from ..services import campaign_service, platform_sync_service
from ..services.platform_connection_service import parse_platform
from ..services.query_filters import parse_list_query, project

router = APIRouter(
    prefix="/campaigns",
    tags=["Campaigns"],
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Bad Request"},
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        403: {"model": schemas.ErrorResponse, "description": "Forbidden"},
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    },
)


def _dump(campaign) -> dict:
    return schemas.CampaignOut.model_validate(campaign).model_dump(mode="json", by_alias=True)


@router.post(
    "",
    response_model=schemas.DataResponse[schemas.CampaignOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create a campaign",
    description="The caller becomes the owner; an `owner` in the body is ignored.",
)
def create_campaign(
    payload: schemas.CampaignCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    campaign = campaign_service.create_campaign(db, current_user, payload)
    return {"success": True, "data": schemas.CampaignOut.model_validate(campaign)}


@router.get(
    "",
    response_model=schemas.PageResponse,
    summary="List campaigns",
    description="""
    Paginated, filterable list of the caller's campaigns.

    Query syntax:
    - `status=active`, `budget.total[gte]=500`, `objective[in]=leads,sales`
    - `select=name,status` (id is always included)
    - `sort=-createdAt,name` (default `-createdAt`)
    - `page` (default 1), `limit` (default 10, max 100)
    """,
)
def list_campaigns(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    list_query = parse_list_query(request.query_params.multi_items(), campaign_service.CAMPAIGN_FIELDS)
    page = campaign_service.list_campaigns(db, current_user, list_query)
    data = [project(_dump(campaign), list_query.select) for campaign in page.items]
    return {"success": True, "count": page.count, "pagination": page.pagination, "data": data}


@router.get(
    "/{campaign_id}",
    response_model=schemas.DataResponse[schemas.CampaignOut],
    summary="Get a campaign",
)
def get_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    campaign = campaign_service.get_campaign(db, current_user, campaign_id)
    return {"success": True, "data": schemas.CampaignOut.model_validate(campaign)}


@router.put(
    "/{campaign_id}",
    response_model=schemas.DataResponse[schemas.CampaignOut],
    summary="Update a campaign",
    description="""
    Partial update. Sending `platforms` replaces the whole allocation list.
    A status change is forwarded to every platform the campaign is published on.
    """,
)
def update_campaign(
    campaign_id: UUID,
    payload: schemas.CampaignUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    platform_clients=Depends(get_platform_clients),
):
    campaign = campaign_service.update_campaign(
        db,
        current_user,
        campaign_id,
        payload,
        on_status_change=lambda changed: platform_sync_service.push_status(db, platform_clients, changed),
    )
    return {"success": True, "data": schemas.CampaignOut.model_validate(campaign)}


@router.delete(
    "/{campaign_id}",
    summary="Delete a campaign",
    description="Leads attributed to the campaign are kept with no campaign.",
)
def delete_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    campaign_service.delete_campaign(db, current_user, campaign_id)
    return {"success": True, "data": {}}


@router.get(
    "/{campaign_id}/metrics",
    response_model=schemas.DataResponse[schemas.CampaignMetricsOut],
    summary="Get campaign metrics",
)
def get_campaign_metrics(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    metrics = campaign_service.campaign_metrics(db, current_user, campaign_id)
    return {"success": True, "data": schemas.CampaignMetricsOut(**metrics)}


@router.get(
    "/{campaign_id}/leads",
    response_model=schemas.ListResponse,
    summary="List leads of a campaign",
)
def get_campaign_leads(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leads = campaign_service.campaign_leads(db, current_user, campaign_id)
    data = [schemas.LeadOut.model_validate(lead).model_dump(mode="json", by_alias=True) for lead in leads]
    return {"success": True, "count": len(data), "data": data}


@router.post(
    "/{campaign_id}/platforms/{platform}/publish",
    response_model=schemas.DataResponse[schemas.CampaignOut],
    summary="Publish a campaign to an ad platform",
    description="""
    Creates the campaign on Facebook, Google or LinkedIn using the caller's
    connection and stores the external id on the matching allocation.
    """,
)
def publish_campaign(
    campaign_id: UUID,
    platform: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    platform_clients=Depends(get_platform_clients),
):
    campaign = platform_sync_service.publish(
        db, platform_clients, current_user, campaign_id, parse_platform(platform)
    )
    return {"success": True, "data": schemas.CampaignOut.model_validate(campaign)}


@router.post(
    "/{campaign_id}/platforms/{platform}/sync",
    response_model=schemas.DataResponse[schemas.CampaignOut],
    summary="Pull platform metrics into a campaign",
)
def sync_campaign_metrics(
    campaign_id: UUID,
    platform: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    platform_clients=Depends(get_platform_clients),
):
    campaign = platform_sync_service.sync_metrics(
        db, platform_clients, current_user, campaign_id, parse_platform(platform)
    )
    return {"success": True, "data": schemas.CampaignOut.model_validate(campaign)}
