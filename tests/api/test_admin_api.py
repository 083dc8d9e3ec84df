# tests/api/test_admin_api.py

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.core.exceptions import ConflictError, PersistenceError, PersistenceUnavailableError

pytestmark = pytest.mark.asyncio


@pytest.fixture(autouse=True)
def _seed(seeded_store):
    seeded_store.seed(
        "orders",
        {"id": "o1", "customer_name": "A", "contact_number": "1", "service_type": "pickup", "total": 100,
         "affiliate_id": "aff-maria", "referred_by": "Maria Santos", "referral_code": "ABC123",
         "created_at": "2025-07-01T00:00:00+00:00"},
        {"id": "o2", "customer_name": "B", "contact_number": "2", "service_type": "dine-in", "total": 200,
         "affiliate_id": "aff-maria", "referred_by": "Maria Santos", "referral_code": "ABC123",
         "created_at": "2025-07-02T00:00:00+00:00"},
        {"id": "o3", "customer_name": "C", "contact_number": "3", "service_type": "delivery", "total": 300,
         "affiliate_id": None, "created_at": "2025-07-03T00:00:00+00:00"},
    )
    seeded_store.rpc_error = PersistenceError("function get_referral_stats() does not exist")
    return seeded_store


async def test_admin_endpoints_require_a_token(client: AsyncClient):
    assert (await client.get("/api/v1/admin/affiliates")).status_code in (401, 403)
    bad = await client.get("/api/v1/admin/affiliates", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


async def test_login(client: AsyncClient, mocker):
    mocker.patch.object(settings, "ADMIN_PASSWORD", "s3cret")

    assert (await client.post("/api/v1/admin/login", json={"password": "wrong"})).status_code == 401

    response = await client.post("/api/v1/admin/login", json={"password": "s3cret"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    listing = await client.get("/api/v1/admin/affiliates", headers={"Authorization": f"Bearer {token}"})
    assert listing.status_code == 200


async def test_affiliate_crud(client: AsyncClient, admin_auth_headers):
    created = await client.post(
        "/api/v1/admin/affiliates",
        json={"name": "Liza Soberano", "email": "liza@example.com", "referral_code": "LIZA1"},
        headers=admin_auth_headers,
    )
    assert created.status_code == 201
    affiliate_id = created.json()["id"]

    duplicate = await client.post(
        "/api/v1/admin/affiliates", json={"name": "Other", "referral_code": "LIZA1"}, headers=admin_auth_headers
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "Referral code 'LIZA1' is already taken."

    updated = await client.patch(
        f"/api/v1/admin/affiliates/{affiliate_id}", json={"status": "suspended"}, headers=admin_auth_headers
    )
    assert updated.json()["status"] == "suspended"
    assert updated.json()["email"] == "liza@example.com"

    assert (await client.delete(f"/api/v1/admin/affiliates/{affiliate_id}", headers=admin_auth_headers)).status_code == 200
    assert (await client.delete(f"/api/v1/admin/affiliates/{affiliate_id}", headers=admin_auth_headers)).status_code == 404
    assert (await client.get(f"/api/v1/admin/affiliates/{affiliate_id}", headers=admin_auth_headers)).status_code == 404


@pytest.mark.parametrize("payload", [
    {"name": None},
    {"referral_code": None},
    {"status": None},
    {"name": "   "},
    {"referral_code": ""},
])
async def test_update_rejects_null_or_blank_required_fields(client: AsyncClient, admin_auth_headers, seeded_store, payload):
    response = await client.patch("/api/v1/admin/affiliates/aff-maria", json=payload, headers=admin_auth_headers)

    assert response.status_code == 422
    maria = next(a for a in seeded_store.tables["affiliates"] if a["id"] == "aff-maria")
    assert (maria["name"], maria["referral_code"], maria["status"]) == ("Maria Santos", "ABC123", "active")


async def test_update_strips_name_and_keeps_optional_nulls(client: AsyncClient, admin_auth_headers):
    response = await client.patch(
        "/api/v1/admin/affiliates/aff-maria", json={"name": "  Maria S.  ", "notes": None}, headers=admin_auth_headers
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Maria S."
    assert response.json()["notes"] is None


async def test_update_conflict_without_code_reports_database_message(
    client: AsyncClient, admin_auth_headers, seeded_store
):
    message = 'duplicate key value violates unique constraint "affiliates_email_key"'
    seeded_store.failures["affiliates"] = ConflictError(message, code="23505")

    response = await client.patch(
        "/api/v1/admin/affiliates/aff-maria", json={"email": "jose@example.com"}, headers=admin_auth_headers
    )

    assert response.status_code == 409
    assert response.json()["detail"] == message


async def test_create_with_blank_name_is_invalid(client: AsyncClient, admin_auth_headers):
    response = await client.post("/api/v1/admin/affiliates", json={"name": "  "}, headers=admin_auth_headers)
    assert response.status_code == 422


async def test_create_generates_a_code(client: AsyncClient, admin_auth_headers):
    response = await client.post("/api/v1/admin/affiliates", json={"name": "Paolo Reyes"}, headers=admin_auth_headers)
    assert response.status_code == 201
    assert response.json()["referral_code"].startswith("paoloreyes")


async def test_generate_code_suggestion(client: AsyncClient, admin_auth_headers):
    response = await client.get(
        "/api/v1/admin/affiliates/generate-code", params={"name": "Ana Cruz"}, headers=admin_auth_headers
    )
    body = response.json()
    assert body["referral_code"].startswith("anacruz")
    assert body["referral_link"].endswith(f"/?ref={body['referral_code']}")


async def test_referred_orders_and_status_update(client: AsyncClient, admin_auth_headers):
    orders = await client.get("/api/v1/admin/orders", headers=admin_auth_headers)
    assert [o["id"] for o in orders.json()] == ["o2", "o1"]
    assert orders.json()[0]["affiliates"] == {"name": "Maria Santos", "referral_code": "ABC123"}

    recent = await client.get("/api/v1/admin/orders", params={"limit": 1}, headers=admin_auth_headers)
    assert [o["id"] for o in recent.json()] == ["o2"]

    updated = await client.patch("/api/v1/admin/orders/o1/status", json={"status": "ready"}, headers=admin_auth_headers)
    assert updated.json()["status"] == "ready"

    invalid = await client.patch("/api/v1/admin/orders/o1/status", json={"status": "lost"}, headers=admin_auth_headers)
    assert invalid.status_code == 422
    missing = await client.patch("/api/v1/admin/orders/zz/status", json={"status": "ready"}, headers=admin_auth_headers)
    assert missing.status_code == 404


async def test_affiliate_orders(client: AsyncClient, admin_auth_headers):
    response = await client.get("/api/v1/admin/affiliates/aff-maria/orders", headers=admin_auth_headers)
    assert [o["id"] for o in response.json()] == ["o2", "o1"]


async def test_stats_fall_back_when_function_is_missing(client: AsyncClient, admin_auth_headers):
    response = await client.get("/api/v1/admin/referrals/stats", headers=admin_auth_headers)
    stats = response.json()
    assert stats["total_referrals"] == 2
    assert stats["total_sales"] == 300
    assert stats["avg_order_value"] == 150
    assert stats["top_affiliate_name"] == "Maria Santos"
    assert stats["active_affiliates"] == 1


async def test_analytics_from_view(client: AsyncClient, admin_auth_headers, seeded_store):
    seeded_store.seed("referral_analytics", {
        "affiliate_id": "aff-maria", "affiliate_name": "Maria Santos", "referral_code": "ABC123",
        "total_referrals": 2, "total_sales": 300,
    })
    response = await client.get("/api/v1/admin/referrals/analytics", headers=admin_auth_headers)
    assert response.json()[0]["total_sales"] == 300


async def test_database_outage_is_503(client: AsyncClient, admin_auth_headers, seeded_store):
    seeded_store.failures["affiliates"] = PersistenceUnavailableError("timeout")
    response = await client.get("/api/v1/admin/affiliates", headers=admin_auth_headers)
    assert response.status_code == 503


async def test_clear_menu_cache(client: AsyncClient, admin_auth_headers, fake_redis):
    await client.get("/api/v1/menu")
    assert "menu:all" in fake_redis.data
    response = await client.post("/api/v1/admin/cache/clear", headers=admin_auth_headers)
    assert response.status_code == 200
    assert "menu:all" not in fake_redis.data
