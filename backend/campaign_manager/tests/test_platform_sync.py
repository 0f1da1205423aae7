"""HTTP tests for publish, metric sync, status push and lead import.

Outbound platform calls go to the `platform_api` fake; nothing leaves the process.
"""

import json
import uuid

import httpx

from campaign_manager.models import PlatformConnection, PlatformEnum
from campaign_manager.services import platform_connection_service

FACEBOOK_CREDENTIALS = {"accessToken": "fb-token", "accountId": "1234"}
GOOGLE_CREDENTIALS = {"accessToken": "g-access", "refreshToken": "g-refresh", "accountId": "555"}


def _connect(client, headers, platform, credentials):
    response = client.post(f"/api/platforms/{platform}/connect", json=credentials, headers=headers)
    assert response.status_code == 200


def _allocation(campaign, name):
    return next(p for p in campaign["platforms"] if p["name"] == name)


def test_publish_stores_external_id(client, headers, create_campaign, platform_api):
    platform_api.add("POST", "/act_1234/campaigns", httpx.Response(200, json={"id": "fb-777"}))
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()

    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)
    assert response.status_code == 200
    facebook = _allocation(response.json()["data"], "facebook")
    assert facebook["platformCampaignId"] == "fb-777"
    assert facebook["status"] == "active"
    assert _allocation(response.json()["data"], "google")["platformCampaignId"] is None

    sent = json.loads(platform_api.requests[0].content)
    assert sent["name"] == campaign["name"]
    assert sent["daily_budget"] == 5000

    again = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)
    assert again.status_code == 400
    assert len(platform_api.requests) == 1


def test_publish_without_connection_is_rejected(client, headers, create_campaign, platform_api):
    campaign = create_campaign()
    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert platform_api.requests == []


def test_publish_to_platform_not_in_campaign(client, headers, create_campaign, platform_api):
    _connect(client, headers, "linkedin", {"accessToken": "li", "accountId": "9"})
    campaign = create_campaign()
    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/linkedin/publish", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Campaign does not run on linkedin"


def test_publish_upstream_failure_marks_allocation(client, headers, create_campaign, platform_api):
    platform_api.add(
        "POST", "/act_1234/campaigns",
        httpx.Response(400, json={"error": {"message": "Invalid budget"}}),
    )
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()

    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to create Facebook campaign: Invalid budget"}

    stored = client.get(f"/api/campaigns/{campaign['id']}", headers=headers).json()["data"]
    assert _allocation(stored, "facebook")["status"] == "error"


def test_publish_by_other_user_is_forbidden(client, other_headers, create_campaign, platform_api):
    _connect(client, other_headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()
    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=other_headers)
    assert response.status_code == 403
    assert platform_api.requests == []


def test_sync_stores_metrics_and_totals(client, headers, create_campaign, platform_api):
    platform_api.add("POST", "/act_1234/campaigns", httpx.Response(200, json={"id": "fb-777"}))
    platform_api.add("GET", "/fb-777/insights", httpx.Response(200, json={"data": [{
        "impressions": "1000",
        "clicks": "40",
        "spend": "80",
        "ctr": "0.04",
        "cpc": "2",
        "actions": [{"action_type": "lead", "value": "4"}],
    }]}))
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()
    client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)

    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/sync", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    metrics = _allocation(data, "facebook")["metrics"]
    assert metrics["impressions"] == 1000
    assert metrics["conversions"] == 4
    assert metrics["costPerConversion"] == 20
    assert data["totalMetrics"]["spend"] == 80
    assert data["totalMetrics"]["clicks"] == 40


def test_sync_requires_published_campaign(client, headers, create_campaign, platform_api):
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()
    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/sync", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Campaign is not published on facebook"


def test_google_sync_refreshes_and_persists_token(client, headers, user, db, app, create_campaign, platform_api):
    platform_api.add("POST", "/customers/555/campaigns", httpx.Response(200, json={"resourceName": "customers/555/campaigns/42"}))
    search_calls = []

    def _search(request):
        search_calls.append(request)
        if len(search_calls) == 1:
            return httpx.Response(401, json={"error": {"message": "Token expired"}})
        return httpx.Response(200, json={"results": [{"metrics": {"impressions": "10", "cost_micros": "2000000"}}]})

    platform_api.add("POST", "googleAds:search", _search)
    platform_api.add("POST", "oauth2.googleapis.com/token", httpx.Response(200, json={"access_token": "g-fresh"}))

    _connect(client, headers, "google", GOOGLE_CREDENTIALS)
    campaign = create_campaign()
    assert client.post(f"/api/campaigns/{campaign['id']}/platforms/google/publish", headers=headers).status_code == 200

    response = client.post(f"/api/campaigns/{campaign['id']}/platforms/google/sync", headers=headers)
    assert response.status_code == 200
    assert _allocation(response.json()["data"], "google")["metrics"]["spend"] == 2.0
    assert search_calls[-1].headers["Authorization"] == "Bearer g-fresh"

    connection = (
        db.query(PlatformConnection)
        .filter(PlatformConnection.user_id == user.id, PlatformConnection.platform == PlatformEnum.google)
        .one()
    )
    assert platform_connection_service.access_token(app.state.cipher, connection) == "g-fresh"


def test_status_change_is_pushed_to_published_platforms(client, headers, create_campaign, platform_api):
    platform_api.add("POST", "/act_1234/campaigns", httpx.Response(200, json={"id": "fb-777"}))
    platform_api.add("POST", "/fb-777", httpx.Response(200, json={"success": True}))
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()
    client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)

    response = client.put(f"/api/campaigns/{campaign['id']}", json={"status": "active"}, headers=headers)
    assert response.status_code == 200
    pushed = platform_api.requests[-1]
    assert pushed.url.path.endswith("/fb-777")
    assert json.loads(pushed.content) == {"status": "ACTIVE"}

    before = len(platform_api.requests)
    client.put(f"/api/campaigns/{campaign['id']}", json={"name": "Renamed"}, headers=headers)
    assert len(platform_api.requests) == before


def test_failed_status_push_keeps_local_update(client, headers, create_campaign, platform_api):
    platform_api.add("POST", "/act_1234/campaigns", httpx.Response(200, json={"id": "fb-777"}))
    platform_api.add("POST", "/fb-777", httpx.Response(500, json={"error": {"message": "down"}}))
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()
    client.post(f"/api/campaigns/{campaign['id']}/platforms/facebook/publish", headers=headers)

    response = client.put(f"/api/campaigns/{campaign['id']}", json={"status": "paused"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "paused"


def test_import_leads_from_facebook_form(client, headers, create_campaign, platform_api):
    platform_api.add("GET", "/form-1/leads", httpx.Response(200, json={"data": [
        {"id": "l1", "field_data": [
            {"name": "first_name", "values": ["Ann"]},
            {"name": "email", "values": ["ann@example.com"]},
        ]},
        {"id": "l2", "field_data": [{"name": "first_name", "values": ["NoEmail"]}]},
    ]}))
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()

    response = client.post(
        "/api/leads/import",
        json={"platform": "facebook", "formId": "form-1", "campaign": campaign["id"]},
        headers=headers,
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["imported"] == 1
    assert data["skipped"] == 1
    lead = data["leads"][0]
    assert lead["email"] == "ann@example.com"
    assert lead["source"]["platform"] == "facebook"
    assert lead["source"]["campaign"]["id"] == campaign["id"]

    stored = client.get(f"/api/campaigns/{campaign['id']}", headers=headers).json()["data"]
    assert stored["leads"] == [lead["id"]]


def test_import_skips_submissions_with_invalid_email(client, headers, create_campaign, platform_api):
    platform_api.add("GET", "/form-2/leads", httpx.Response(200, json={"data": [
        {"id": "l1", "field_data": [{"name": "email", "values": ["not-an-email"]}]},
        {"id": "l2", "field_data": [{"name": "email", "values": ["bob@"]}]},
        {"id": "l3", "field_data": [{"name": "email", "values": ["  kim@example.com "]}]},
    ]}))
    _connect(client, headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()

    response = client.post(
        "/api/leads/import",
        json={"platform": "facebook", "formId": "form-2", "campaign": campaign["id"]},
        headers=headers,
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["imported"] == 1
    assert data["skipped"] == 2
    assert [lead["email"] for lead in data["leads"]] == ["kim@example.com"]

    stored = client.get("/api/leads", headers=headers).json()
    assert [lead["email"] for lead in stored["data"]] == ["kim@example.com"]


def test_import_into_foreign_campaign_never_calls_platform(client, headers, other_headers, create_campaign, platform_api):
    _connect(client, other_headers, "facebook", FACEBOOK_CREDENTIALS)
    campaign = create_campaign()
    response = client.post(
        "/api/leads/import",
        json={"platform": "facebook", "formId": "form-1", "campaign": campaign["id"]},
        headers=other_headers,
    )
    assert response.status_code == 403
    assert platform_api.requests == []

    missing = client.post(
        "/api/leads/import",
        json={"platform": "facebook", "formId": "form-1", "campaign": str(uuid.uuid4())},
        headers=other_headers,
    )
    assert missing.status_code == 404


def test_import_rejects_platform_without_lead_forms(client, headers, create_campaign):
    campaign = create_campaign()
    response = client.post(
        "/api/leads/import",
        json={"platform": "google", "formId": "form-1", "campaign": campaign["id"]},
        headers=headers,
    )
    assert response.status_code == 400
