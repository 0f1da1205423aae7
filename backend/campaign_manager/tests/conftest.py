"""Pytest configuration for API and service tests

WHAT: Provides shared fixtures: an app on in-memory SQLite, a TestClient,
      user/token/header factories, request payload builders, and a fake
      ad-platform API served through httpx.MockTransport.
WHY: Every test gets its own database (one app per test), and no test
     ever reaches a real ad platform.
REFERENCES:
    - campaign_manager/main.py: create_app
    - campaign_manager/services/platform_sync_service.py: PlatformClientFactory
"""

import itertools
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure backend is in path
BACKEND_ROOT = Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Must be URL-safe base64-encoded 32-byte string (security.build_cipher validates it)
TEST_ENCRYPTION_KEY = "MDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA="

os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)
os.environ.setdefault("DATABASE_URL", "sqlite://")

from campaign_manager.database import get_sync_session  # noqa: E402
from campaign_manager.deps import Settings  # noqa: E402
from campaign_manager.main import create_app  # noqa: E402
from campaign_manager.models import AuthCredential, RoleEnum, User  # noqa: E402
from campaign_manager.security import get_password_hash  # noqa: E402
from campaign_manager.services.platform_sync_service import PlatformClientFactory  # noqa: E402
from campaign_manager.services.user_service import issue_token  # noqa: E402

DEFAULT_PASSWORD = "secret123"
_emails = itertools.count(1)


# ============================================================================
# Application & Database Fixtures
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        AUTO_CREATE_TABLES=True,
        JWT_SECRET="test-jwt-secret",
        TOKEN_ENCRYPTION_KEY=TEST_ENCRYPTION_KEY,
        LOG_LEVEL="WARNING",
        GOOGLE_CLIENT_ID="test-client-id",
        GOOGLE_CLIENT_SECRET="test-client-secret",
        GOOGLE_DEVELOPER_TOKEN="test-developer-token",
    )


@pytest.fixture
def app(settings):
    """Fresh application with its own in-memory database."""
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(app):
    """Session on the app's database, for arranging and inspecting state directly."""
    with get_sync_session(app.state.session_factory) as session:
        yield session


# ============================================================================
# Authentication Fixtures
# ============================================================================

@pytest.fixture
def make_user(app) -> Callable[..., User]:
    """Insert a user with a password credential and return it detached."""

    def _make(name: str = "Test User", email: str = None, password: str = DEFAULT_PASSWORD,
              role: RoleEnum = RoleEnum.user, company: str = None) -> User:
        email = email or f"user{next(_emails)}@example.com"
        with get_sync_session(app.state.session_factory) as session:
            user = User(name=name, email=email, role=role, company=company)
            user.credential = AuthCredential(password_hash=get_password_hash(password))
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    return _make


@pytest.fixture
def auth_headers(settings) -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(settings, user)}"}

    return _headers


@pytest.fixture
def user(make_user) -> User:
    return make_user(name="Alice Owner", email="alice@example.com")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user(name="Bob Other", email="bob@example.com")


@pytest.fixture
def admin(make_user) -> User:
    return make_user(name="Ada Admin", email="admin@example.com", role=RoleEnum.admin)


@pytest.fixture
def headers(auth_headers, user) -> Dict[str, str]:
    return auth_headers(user)


@pytest.fixture
def other_headers(auth_headers, other_user) -> Dict[str, str]:
    return auth_headers(other_user)


@pytest.fixture
def admin_headers(auth_headers, admin) -> Dict[str, str]:
    return auth_headers(admin)


# ============================================================================
# Payload Builders
# ============================================================================

def build_campaign_payload(**overrides) -> dict:
    payload = {
        "name": "Spring Launch",
        "description": "Launch of the spring collection",
        "objective": "lead_generation",
        "startDate": "2024-03-01T00:00:00Z",
        "endDate": "2024-04-30T00:00:00Z",
        "budget": {"total": 1000, "daily": 50, "currency": "USD"},
        "platforms": [{"name": "facebook", "budget": 600}, {"name": "google", "budget": 400}],
    }
    payload.update(overrides)
    return payload


def build_lead_payload(campaign_id: str, **overrides) -> dict:
    payload = {
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane.doe@example.com",
        "phone": "+15550100",
        "source": {"platform": "facebook", "campaign": campaign_id},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def campaign_payload() -> Callable[..., dict]:
    return build_campaign_payload


@pytest.fixture
def lead_payload() -> Callable[..., dict]:
    return build_lead_payload


@pytest.fixture
def create_campaign(client, headers) -> Callable[..., dict]:
    """POST a campaign (as `user` unless other headers are given) and return its data."""

    def _create(request_headers: Dict[str, str] = None, **overrides) -> dict:
        response = client.post("/api/campaigns", json=build_campaign_payload(**overrides), headers=request_headers or headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def create_lead(client, headers) -> Callable[..., dict]:
    def _create(campaign_id: str, request_headers: Dict[str, str] = None, **overrides) -> dict:
        response = client.post("/api/leads", json=build_lead_payload(campaign_id, **overrides), headers=request_headers or headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


# ============================================================================
# Fake Ad Platform APIs
# ============================================================================

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakePlatformAPI:
    """Routes outbound platform requests to canned responses and records them.

    Routes match on HTTP method plus a substring of the URL; the first
    registered match wins. Unmatched requests get a 404 error body.
    """

    def __init__(self) -> None:
        self.routes: List[Tuple[str, str, Responder]] = []
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url_part: str, response: Responder) -> None:
        self.routes.append((method.upper(), url_part, response))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, url_part, response in self.routes:
            if request.method == method and url_part in str(request.url):
                return response(request) if callable(response) else response
        return httpx.Response(404, json={"error": {"message": f"No route for {request.method} {request.url}"}})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def platform_api(app, settings) -> FakePlatformAPI:
    """Install a fake platform API behind the app's platform client factory."""
    fake = FakePlatformAPI()
    app.state.platform_clients = PlatformClientFactory(settings, app.state.cipher, transport=fake.transport)
    return fake
