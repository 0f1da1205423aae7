"""Lead endpoints: CRUD plus import from Facebook/LinkedIn lead forms."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_current_user, get_platform_clients
from ..models import PlatformEnum, User
from ..services import lead_service, platform_sync_service
from ..services.query_filters import parse_list_query, project

router = APIRouter(
    prefix="/leads",
    tags=["Leads"],
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Bad Request"},
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        403: {"model": schemas.ErrorResponse, "description": "Forbidden"},
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        500: {"model": schemas.ErrorResponse, "description": "Internal Server Error"},
    },
)


def _dump(lead) -> dict:
    return schemas.LeadOut.model_validate(lead).model_dump(mode="json", by_alias=True)


@router.post(
    "",
    response_model=schemas.DataResponse[schemas.LeadOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create a lead",
    description="`source.campaign` must be a campaign the caller owns (admins: any campaign).",
)
def create_lead(
    payload: schemas.LeadCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead = lead_service.create_lead(db, current_user, payload)
    return {"success": True, "data": schemas.LeadOut.model_validate(lead)}


@router.get(
    "",
    response_model=schemas.PageResponse,
    summary="List leads",
    description="""
    Paginated, filterable list of the caller's leads.

    Examples: `status=new`, `source.platform=google`, `createdAt[gte]=2024-01-01`,
    `sort=lastName`, `select=firstName,email`. Default limit 25, max 100.
    """,
)
def list_leads(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    list_query = parse_list_query(request.query_params.multi_items(), lead_service.LEAD_FIELDS)
    page = lead_service.list_leads(db, current_user, list_query)
    data = [project(_dump(lead), list_query.select) for lead in page.items]
    return {"success": True, "count": page.count, "pagination": page.pagination, "data": data}


@router.post(
    "/import",
    response_model=schemas.DataResponse[schemas.LeadImportOut],
    status_code=status.HTTP_201_CREATED,
    summary="Import lead-form submissions",
    description="""
    Pulls the submissions of a Facebook or LinkedIn lead form through the
    caller's connection and creates one lead per submission that has an email.
    """,
)
def import_leads(
    payload: schemas.LeadImportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    platform_clients=Depends(get_platform_clients),
):
    leads, skipped = lead_service.import_leads(
        db,
        current_user,
        payload,
        lambda: platform_sync_service.fetch_form_leads(
            db, platform_clients, current_user, PlatformEnum(payload.platform), payload.form_id
        ),
    )
    data = schemas.LeadImportOut(
        imported=len(leads),
        skipped=skipped,
        leads=[schemas.LeadOut.model_validate(lead) for lead in leads],
    )
    return {"success": True, "data": data}


@router.get(
    "/{lead_id}",
    response_model=schemas.DataResponse[schemas.LeadOut],
    summary="Get a lead",
)
def get_lead(
    lead_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead = lead_service.get_lead(db, current_user, lead_id)
    return {"success": True, "data": schemas.LeadOut.model_validate(lead)}


@router.put(
    "/{lead_id}",
    response_model=schemas.DataResponse[schemas.LeadOut],
    summary="Update a lead",
    description="Partial update. Changing `source.campaign` moves the lead to that campaign.",
)
def update_lead(
    lead_id: UUID,
    payload: schemas.LeadUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead = lead_service.update_lead(db, current_user, lead_id, payload)
    return {"success": True, "data": schemas.LeadOut.model_validate(lead)}


@router.delete(
    "/{lead_id}",
    summary="Delete a lead",
)
def delete_lead(
    lead_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead_service.delete_lead(db, current_user, lead_id)
    return {"success": True, "data": {}}
