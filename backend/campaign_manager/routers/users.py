"""User profile endpoints and the admin user list."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_current_user, require_roles
from ..models import RoleEnum, User
from ..services import platform_connection_service, user_service
from ..services.query_filters import parse_list_query, project

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Bad Request"},
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        403: {"model": schemas.ErrorResponse, "description": "Forbidden"},
    },
)


def _profile(db: Session, user: User) -> schemas.ProfileOut:
    profile = schemas.ProfileOut.model_validate(user)
    profile.platform_connections = [
        schemas.ConnectionSummary.model_validate(item)
        for item in platform_connection_service.connection_summaries(db, user)
    ]
    return profile


@router.get(
    "/profile",
    response_model=schemas.DataResponse[schemas.ProfileOut],
    summary="Get my profile",
    description="Profile plus one `platformConnections` entry per platform ever connected.",
)
def get_profile(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": _profile(db, current_user)}


@router.put(
    "/profile",
    response_model=schemas.DataResponse[schemas.ProfileOut],
    summary="Update my profile",
)
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = user_service.update_profile(db, current_user, payload)
    return {"success": True, "data": _profile(db, user)}


@router.get(
    "",
    response_model=schemas.PageResponse,
    summary="List all users (admin)",
)
def list_users(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(RoleEnum.admin)),
):
    list_query = parse_list_query(request.query_params.multi_items(), user_service.USER_FIELDS)
    page = user_service.list_users(db, list_query)
    data = [
        project(schemas.UserOut.model_validate(user).model_dump(mode="json", by_alias=True), list_query.select)
        for user in page.items
    ]
    return {"success": True, "count": page.count, "pagination": page.pagination, "data": data}
