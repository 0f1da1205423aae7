"""HTTP tests for campaign CRUD, ownership, listing and per-campaign reads."""

import uuid

import pytest

from campaign_manager.models import Lead


def test_create_campaign_sets_owner_and_defaults(client, headers, user, campaign_payload):
    payload = campaign_payload(owner=str(uuid.uuid4()))
    response = client.post("/api/campaigns", json=payload, headers=headers)
    assert response.status_code == 201
    data = response.json()["data"]

    assert data["owner"] == str(user.id)
    assert data["status"] == "draft"
    assert data["leads"] == []
    assert data["budget"] == {"total": 1000.0, "daily": 50.0, "currency": "USD"}
    assert [p["name"] for p in data["platforms"]] == ["facebook", "google"]
    facebook = data["platforms"][0]
    assert facebook["status"] == "pending"
    assert facebook["metrics"]["impressions"] == 0
    assert data["totalMetrics"]["spend"] == 0
    assert data["totalMetrics"]["ctr"] == 0
    assert data["startDate"].startswith("2024-03-01")


def test_create_campaign_requires_auth(client, campaign_payload):
    response = client.post("/api/campaigns", json=campaign_payload())
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"objective": "world_domination"},
        {"budget": {"total": -5}},
        {"platforms": [{"name": "myspace", "budget": 10}]},
    ],
)
def test_create_campaign_validation(client, headers, campaign_payload, overrides):
    response = client.post("/api/campaigns", json=campaign_payload(**overrides), headers=headers)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_total_metrics_are_recomputed_from_platforms(client, headers, campaign_payload):
    payload = campaign_payload(platforms=[
        {"name": "facebook", "budget": 500, "metrics": {"impressions": 1000, "clicks": 50, "conversions": 5, "spend": 100}},
        {"name": "linkedin", "budget": 500, "metrics": {"impressions": 3000, "clicks": 50, "conversions": 0, "spend": 100}},
    ])
    data = client.post("/api/campaigns", json=payload, headers=headers).json()["data"]
    totals = data["totalMetrics"]
    assert totals["impressions"] == 4000
    assert totals["clicks"] == 100
    assert totals["spend"] == 200
    assert totals["ctr"] == pytest.approx(2.5)
    assert totals["cpc"] == pytest.approx(2.0)
    assert totals["cpm"] == pytest.approx(50.0)
    assert totals["costPerConversion"] == pytest.approx(40.0)


def test_get_campaign_ownership(client, headers, other_headers, admin_headers, create_campaign):
    campaign = create_campaign()

    assert client.get(f"/api/campaigns/{campaign['id']}", headers=headers).status_code == 200

    forbidden = client.get(f"/api/campaigns/{campaign['id']}", headers=other_headers)
    assert forbidden.status_code == 403
    assert forbidden.json()["success"] is False

    assert client.get(f"/api/campaigns/{campaign['id']}", headers=admin_headers).status_code == 200


def test_get_missing_campaign_is_404(client, headers):
    missing = uuid.uuid4()
    response = client.get(f"/api/campaigns/{missing}", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": f"Campaign not found with id of {missing}"}


def test_malformed_campaign_id_is_400(client, headers):
    assert client.get("/api/campaigns/not-a-uuid", headers=headers).status_code == 400


def test_list_is_scoped_to_owner_even_for_admin(client, headers, other_headers, admin_headers, create_campaign):
    create_campaign(name="Mine")
    create_campaign(request_headers=other_headers, name="Theirs")

    mine = client.get("/api/campaigns", headers=headers).json()
    assert mine["count"] == 1
    assert mine["data"][0]["name"] == "Mine"

    admin_list = client.get("/api/campaigns", headers=admin_headers).json()
    assert admin_list["count"] == 0


def test_list_filters_sorting_and_pagination(client, headers, create_campaign):
    create_campaign(name="Small", budget={"total": 100})
    create_campaign(name="Medium", budget={"total": 500}, status="active")
    create_campaign(name="Large", budget={"total": 2000}, status="active")

    rich = client.get("/api/campaigns", params={"budget.total[gte]": "500", "sort": "budget.total"}, headers=headers).json()
    assert [c["name"] for c in rich["data"]] == ["Medium", "Large"]

    active = client.get("/api/campaigns", params={"status": "active"}, headers=headers).json()
    assert {c["name"] for c in active["data"]} == {"Medium", "Large"}

    first = client.get("/api/campaigns", params={"limit": "2", "sort": "name"}, headers=headers).json()
    assert first["count"] == 2
    assert [c["name"] for c in first["data"]] == ["Large", "Medium"]
    assert first["pagination"] == {"next": {"page": 2, "limit": 2}}

    second = client.get("/api/campaigns", params={"limit": "2", "page": "2", "sort": "name"}, headers=headers).json()
    assert [c["name"] for c in second["data"]] == ["Small"]
    assert second["pagination"] == {"prev": {"page": 1, "limit": 2}}


def test_pagination_total_counts_only_filtered_owned_records(client, headers, other_headers, create_campaign):
    create_campaign(name="A", status="active")
    create_campaign(name="B", status="active")
    create_campaign(name="C")
    for name in ("X", "Y", "Z"):
        create_campaign(request_headers=other_headers, name=name, status="active")

    page = client.get("/api/campaigns", params={"status": "active", "limit": "2"}, headers=headers).json()
    assert page["count"] == 2
    assert page["pagination"] == {}


def test_list_select_projection(client, headers, create_campaign):
    create_campaign()
    data = client.get("/api/campaigns", params={"select": "name,status"}, headers=headers).json()["data"]
    assert set(data[0]) == {"id", "name", "status"}


def test_list_rejects_unknown_filter(client, headers):
    response = client.get("/api/campaigns", params={"password": "x"}, headers=headers)
    assert response.status_code == 400
    assert "Unknown filter field" in response.json()["error"]


def test_update_campaign_partial(client, headers, create_campaign):
    campaign = create_campaign()
    response = client.put(
        f"/api/campaigns/{campaign['id']}",
        json={"status": "active", "budget": {"daily": 75}, "owner": str(uuid.uuid4())},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "active"
    assert data["budget"] == {"total": 1000.0, "daily": 75.0, "currency": "USD"}
    assert data["name"] == campaign["name"]
    assert data["owner"] == campaign["owner"]


def test_update_replaces_platforms(client, headers, create_campaign):
    campaign = create_campaign()
    response = client.put(
        f"/api/campaigns/{campaign['id']}",
        json={"platforms": [{"name": "linkedin", "budget": 1000}]},
        headers=headers,
    )
    assert [p["name"] for p in response.json()["data"]["platforms"]] == ["linkedin"]


@pytest.mark.parametrize("field", ["name", "tags", "adCreatives", "platforms"])
def test_update_rejects_null_for_non_nullable_fields(client, headers, create_campaign, field):
    campaign = create_campaign(tags=["spring"])
    response = client.put(f"/api/campaigns/{campaign['id']}", json={field: None}, headers=headers)
    assert response.status_code == 400
    assert response.json()["success"] is False

    stored = client.get(f"/api/campaigns/{campaign['id']}", headers=headers)
    assert stored.status_code == 200
    assert stored.json()["data"]["tags"] == ["spring"]
    assert [p["name"] for p in stored.json()["data"]["platforms"]] == ["facebook", "google"]
    assert client.get("/api/campaigns", headers=headers).status_code == 200


def test_update_with_empty_platform_list_clears_allocations(client, headers, create_campaign):
    campaign = create_campaign()
    response = client.put(f"/api/campaigns/{campaign['id']}", json={"platforms": []}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["platforms"] == []


def test_update_and_delete_by_non_owner_are_forbidden(client, other_headers, create_campaign):
    campaign = create_campaign()
    assert client.put(f"/api/campaigns/{campaign['id']}", json={"name": "Hijack"}, headers=other_headers).status_code == 403
    assert client.delete(f"/api/campaigns/{campaign['id']}", headers=other_headers).status_code == 403


def test_delete_campaign_orphans_its_leads(client, headers, db, create_campaign, create_lead):
    campaign = create_campaign()
    lead = create_lead(campaign["id"])

    response = client.delete(f"/api/campaigns/{campaign['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {}}
    assert client.get(f"/api/campaigns/{campaign['id']}", headers=headers).status_code == 404

    kept = client.get(f"/api/leads/{lead['id']}", headers=headers)
    assert kept.status_code == 200
    assert kept.json()["data"]["source"]["campaign"] is None
    assert db.query(Lead).filter(Lead.campaign_id.is_(None)).count() == 1


def test_campaign_metrics_endpoint(client, headers, campaign_payload):
    payload = campaign_payload(platforms=[
        {"name": "facebook", "budget": 500, "metrics": {"impressions": 200, "clicks": 10, "conversions": 2, "spend": 20}},
    ])
    campaign = client.post("/api/campaigns", json=payload, headers=headers).json()["data"]

    response = client.get(f"/api/campaigns/{campaign['id']}/metrics", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["campaignId"] == campaign["id"]
    assert data["name"] == "Spring Launch"
    assert data["platforms"][0]["metrics"]["clicks"] == 10
    assert data["totalMetrics"]["ctr"] == pytest.approx(5.0)
    assert data["totalMetrics"]["costPerConversion"] == pytest.approx(10.0)


def test_campaign_leads_endpoint(client, headers, other_headers, create_campaign, create_lead):
    campaign = create_campaign()
    create_lead(campaign["id"], email="one@example.com")
    create_lead(campaign["id"], email="two@example.com")

    response = client.get(f"/api/campaigns/{campaign['id']}/leads", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert {lead["email"] for lead in body["data"]} == {"one@example.com", "two@example.com"}

    assert client.get(f"/api/campaigns/{campaign['id']}/leads", headers=other_headers).status_code == 403
