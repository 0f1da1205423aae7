"""FastAPI application entrypoint.

Builds the app from `Settings`: logging, database, token cipher, platform
clients, CORS, error envelope handlers, routers and a healthcheck.

Run with:
    uvicorn campaign_manager.main:create_app --factory
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import schemas
from .database import build_engine, build_session_factory
from .deps import Settings, get_settings
from .errors import CampaignManagerError
from .models import Base
from .routers import analytics as analytics_router
from .routers import auth as auth_router
from .routers import campaigns as campaigns_router
from .routers import leads as leads_router
from .routers import platforms as platforms_router
from .routers import users as users_router
from .security import build_cipher
from .utils.env import require_setting
from .services.platform_sync_service import PlatformClientFactory

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ("/health", "/auth/register", "/auth/login", "/auth/forgot-password", "/auth/reset-password")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into `field: message` pairs."""
    parts = []
    for error in exc.errors():
        loc = [str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path", "header")]
        field = ".".join(loc)
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return ", ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CampaignManagerError)
    async def domain_error_handler(request: Request, exc: CampaignManagerError):
        if exc.status_code >= 500:
            logger.error("[ERRORS] %s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("[ERRORS] Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Server Error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    require_setting("JWT_SECRET", settings.JWT_SECRET)
    cipher = build_cipher(settings.TOKEN_ENCRYPTION_KEY)

    engine = build_engine(settings.DATABASE_URL)
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)

    app = FastAPI(
        title="Campaign Manager API",
        description="""
        Multi-tenant marketing campaign manager.

        This API provides endpoints for:
        - User registration, login and profile management
        - Campaigns with per-platform budget allocations and metrics
        - Leads attributed to campaigns and source platforms
        - Dashboard and lead analytics
        - Facebook, Google Ads and LinkedIn connections

        ## Authentication

        Send the JWT returned by register/login as `Authorization: Bearer <token>`.
        Lists only ever show the caller's own campaigns, leads and connections.
        Admins may also read, update or delete any single record by id.
        """,
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.cipher = cipher
    app.state.platform_clients = PlatformClientFactory(settings, cipher)

    logger.info("[CORS] Allowed origins: %s", settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router.router, prefix=settings.API_PREFIX)
    app.include_router(users_router.router, prefix=settings.API_PREFIX)
    app.include_router(campaigns_router.router, prefix=settings.API_PREFIX)
    app.include_router(leads_router.router, prefix=settings.API_PREFIX)
    app.include_router(analytics_router.router, prefix=settings.API_PREFIX)
    app.include_router(platforms_router.router, prefix=settings.API_PREFIX)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="Does not require authentication; used by load balancer checks.",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    # Custom OpenAPI schema with the bearer scheme on protected endpoints
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "bearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "JWT returned by /auth/register or /auth/login",
            }
        }

        public = tuple(
            path if path == "/health" else f"{settings.API_PREFIX}{path}" for path in PUBLIC_PATHS
        )
        for path, operations in openapi_schema["paths"].items():
            if path.startswith(public):
                continue
            for operation in operations.values():
                operation.setdefault("security", [{"bearerAuth": []}])

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi
    logger.info("[STARTUP] Campaign Manager API ready (prefix=%s)", settings.API_PREFIX)
    return app
