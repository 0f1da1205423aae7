"""Ad platform connection endpoints.

WHAT:
    List, create/refresh and revoke the caller's stored credentials for
    Facebook, Google and LinkedIn.

WHY:
    Tokens are encrypted before they reach the database and never leave it
    through the API; responses only describe the connection.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_cipher, get_current_user
from ..models import User
from ..services import platform_connection_service

router = APIRouter(
    prefix="/platforms",
    tags=["Platforms"],
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Bad Request"},
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
    },
)


@router.get(
    "/connections",
    response_model=schemas.ListResponse,
    summary="List my platform connections",
)
def list_connections(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    connections = platform_connection_service.list_connections(db, current_user)
    data = [
        schemas.ConnectionOut.model_validate(connection).model_dump(mode="json", by_alias=True)
        for connection in connections
    ]
    return {"success": True, "count": len(data), "data": data}


@router.post(
    "/{platform}/connect",
    response_model=schemas.DataResponse[schemas.ConnectOut],
    summary="Connect an ad platform",
    description="""
    Stores credentials for `facebook`, `google` or `linkedin`. Reconnecting
    updates the existing connection.

    Required: `accessToken` and `accountId`; Google also needs `refreshToken`.
    """,
)
def connect_platform(
    platform: str,
    payload: schemas.ConnectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cipher=Depends(get_cipher),
):
    target = platform_connection_service.connectable_platform(platform)
    connection = platform_connection_service.connect(db, cipher, current_user, target, payload)
    return {"success": True, "data": schemas.ConnectOut.model_validate(connection)}


@router.delete(
    "/{platform}/disconnect",
    response_model=schemas.DataResponse[schemas.DisconnectOut],
    summary="Disconnect an ad platform",
    description="Revokes the stored connection. Disconnecting twice is not an error.",
)
def disconnect_platform(
    platform: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    target = platform_connection_service.parse_platform(platform)
    platform_connection_service.disconnect(db, current_user, target)
    return {"success": True, "data": schemas.DisconnectOut(platform=target)}
