"""Application wiring: startup configuration checks, health, error envelope."""

import pytest

from campaign_manager.main import create_app


@pytest.mark.parametrize(
    "overrides, variable",
    [
        ({"JWT_SECRET": ""}, "JWT_SECRET"),
        ({"TOKEN_ENCRYPTION_KEY": ""}, "TOKEN_ENCRYPTION_KEY"),
        ({"TOKEN_ENCRYPTION_KEY": "not-a-fernet-key"}, "TOKEN_ENCRYPTION_KEY"),
    ],
)
def test_startup_fails_on_missing_or_bad_secrets(settings, overrides, variable):
    with pytest.raises(RuntimeError) as exc:
        create_app(settings.model_copy(update=overrides))
    assert variable in str(exc.value)


def test_health_needs_no_auth(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


def test_openapi_marks_protected_routes(client):
    schema = client.get("/openapi.json").json()
    assert "bearerAuth" in schema["components"]["securitySchemes"]
    assert schema["paths"]["/api/campaigns"]["get"]["security"] == [{"bearerAuth": []}]
    assert "security" not in schema["paths"]["/api/auth/login"]["post"]


def test_openapi_describes_admin_scope(client):
    description = client.get("/openapi.json").json()["info"]["description"]
    assert "admins see everything" not in description
    assert "Lists only ever show the caller's own campaigns" in description
