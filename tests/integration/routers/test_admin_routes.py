import pytest
import pytest_asyncio
from fastapi import status
from httpx import AsyncClient

from reztek_service.crud.feedback_crud import FEEDBACK_TABLE
from reztek_service.crud.maintenance_crud import REQUESTS_TABLE
from reztek_service.crud.principal_crud import TENANTS_TABLE
from reztek_service.crud.stock_crud import STOCK_TABLE
from reztek_service.errors import StoreError
from reztek_service.security import STANDARD_PREFIX
from tests.fixtures.auth import ADMIN_EMAIL
from tests.fixtures.helpers import request_record, stock_record, tenant_record


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient) -> AsyncClient:
    response = await client.post("/api/auth/direct-login", json={"email": ADMIN_EMAIL})
    assert response.status_code == status.HTTP_200_OK
    return client


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/admin", "/admin/dashboard", "/admin/stock?residence=Observatory"])
async def test_guarded_pages_redirect_without_session(client: AsyncClient, path):
    response = await client.get(path)

    assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
    assert response.headers["location"] == "/admin/login"


@pytest.mark.asyncio
async def test_login_page_is_reachable_without_session(client: AsyncClient):
    response = await client.get("/admin/login")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["portal"] == "admin"


@pytest.mark.asyncio
async def test_admin_login_form_sets_session(client: AsyncClient, fake_auth):
    fake_auth.register(ADMIN_EMAIL, "admin-pass")

    response = await client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": "admin-pass"})

    assert response.status_code == status.HTTP_200_OK, response.text
    assert (await client.get("/admin/dashboard")).status_code == status.HTTP_200_OK


@pytest.mark.asyncio
async def test_tenant_session_cannot_enter_admin_pages(client: AsyncClient, fake_auth):
    token = fake_auth.issue_token("user-1", "thandi@example.com")

    response = await client.get(
        "/admin/dashboard", headers={"Cookie": f"session={STANDARD_PREFIX}{token}"}
    )

    assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT


@pytest.mark.asyncio
async def test_dashboard_summarises_store(admin_client: AsyncClient, fake_store):
    tenant = tenant_record()
    fake_store.seed(TENANTS_TABLE, tenant, tenant_record(email="other@example.com"))
    statuses = ["Pending", "Pending", "In Progress", "Completed", "Cancelled"]
    fake_store.seed(
        REQUESTS_TABLE,
        *[
            request_record(tenant, status=value, submitted_at=f"2026-03-0{index + 1}T08:00:00+00:00")
            for index, value in enumerate(statuses)
        ],
    )
    fake_store.seed(
        STOCK_TABLE,
        stock_record(name="Bulbs", quantity=2),
        stock_record(name="Fuses", quantity=50),
    )
    fake_store.seed(
        FEEDBACK_TABLE,
        {"request_id": "r-1", "rating": 5, "comment": "Great", "created_at": "2026-03-01T10:00:00+00:00"},
    )

    response = await admin_client.get("/admin/dashboard")

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["requests"] == {"total": 5, "pending": 2, "in_progress": 1, "completed": 1}
    assert body["tenant_count"] == 2
    assert [item["name"] for item in body["low_stock_items"]] == ["Bulbs"]
    assert body["low_stock_items"][0]["status"] == "low_stock"
    assert len(body["recent_requests"]) == 5
    assert body["recent_requests"][0]["status"] == "Cancelled"
    assert body["recent_feedback"][0]["rating"] == 5


@pytest.mark.asyncio
async def test_maintenance_list_filters_and_searches(admin_client: AsyncClient, fake_store):
    tenant = tenant_record()
    fake_store.seed(
        REQUESTS_TABLE,
        request_record(tenant, description="Leaking tap", status="Pending"),
        request_record(tenant, description="Broken window", status="Pending"),
        request_record(tenant, description="Leaking roof", status="Completed"),
        request_record(tenant_record(residence="Woodstock"), description="Leaking pipe"),
    )

    everything = await admin_client.get("/admin/maintenance", params={"residence": "Observatory"})
    pending_leaks = await admin_client.get(
        "/admin/maintenance",
        params={"residence": "Observatory", "status": "Pending", "search": "LEAK"},
    )

    assert len(everything.json()) == 3
    assert [item["description"] for item in pending_leaks.json()] == ["Leaking tap"]


@pytest.mark.asyncio
async def test_maintenance_list_requires_residence(admin_client: AsyncClient):
    response = await admin_client.get("/admin/maintenance")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_maintenance_detail_and_status_update(admin_client: AsyncClient, fake_store):
    (stored,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant_record()))

    detail = await admin_client.get(f"/admin/maintenance/{stored['id']}")
    assert detail.status_code == status.HTTP_200_OK
    assert detail.json()["id"] == stored["id"]

    update = await admin_client.patch(
        f"/admin/maintenance/{stored['id']}/status", json={"status": "In Progress"}
    )
    assert update.status_code == status.HTTP_200_OK, update.text
    assert update.json()["status"] == "In Progress"
    assert update.json()["updated_at"] is not None
    assert fake_store.rows(REQUESTS_TABLE)[0]["status"] == "In Progress"


@pytest.mark.asyncio
async def test_status_update_validation_and_missing_request(admin_client: AsyncClient, fake_store):
    (stored,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant_record()))

    invalid = await admin_client.patch(
        f"/admin/maintenance/{stored['id']}/status", json={"status": "Done"}
    )
    missing = await admin_client.patch("/admin/maintenance/nope/status", json={"status": "Completed"})

    assert invalid.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert missing.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_tenants_and_feedback_by_residence(admin_client: AsyncClient, fake_store):
    fake_store.seed(
        TENANTS_TABLE,
        tenant_record(name="Zola"),
        tenant_record(name="Anele"),
        tenant_record(name="Mpho", residence="Woodstock"),
    )
    fake_store.seed(
        FEEDBACK_TABLE,
        {"request_id": "r-1", "residence": "Observatory", "rating": 3, "created_at": "2026-03-01T10:00:00+00:00"},
        {"request_id": "r-2", "residence": "Observatory", "rating": 5, "created_at": "2026-03-02T10:00:00+00:00"},
        {"request_id": "r-3", "residence": "Woodstock", "rating": 1, "created_at": "2026-03-03T10:00:00+00:00"},
    )

    tenants = await admin_client.get("/admin/tenants", params={"residence": "Observatory"})
    feedback = await admin_client.get("/admin/feedback", params={"residence": "Observatory"})

    assert [tenant["name"] for tenant in tenants.json()] == ["Anele", "Zola"]
    assert [item["request_id"] for item in feedback.json()] == ["r-2", "r-1"]


@pytest.mark.asyncio
async def test_stock_crud(admin_client: AsyncClient, fake_store):
    created = await admin_client.post(
        "/admin/stock",
        json={"name": "Bulbs", "quantity": 0, "category": "Electrical", "residence": "Observatory"},
    )
    assert created.status_code == status.HTTP_201_CREATED, created.text
    item = created.json()
    assert item["status"] == "out_of_stock"
    assert item["last_restocked"] is not None

    updated = await admin_client.put(
        f"/admin/stock/{item['id']}",
        json={"name": "Bulbs", "quantity": 20, "category": "Electrical"},
    )
    assert updated.json()["status"] == "in_stock"

    listed = await admin_client.get("/admin/stock", params={"residence": "Observatory"})
    assert [row["quantity"] for row in listed.json()] == [20]

    deleted = await admin_client.delete(f"/admin/stock/{item['id']}")
    assert deleted.status_code == status.HTTP_200_OK
    assert fake_store.rows(STOCK_TABLE) == []
    again = await admin_client.delete(f"/admin/stock/{item['id']}")
    assert again.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_stock_rejects_negative_values(admin_client: AsyncClient):
    response = await admin_client.post(
        "/admin/stock",
        json={"name": "Bulbs", "quantity": -3, "residence": "Observatory"},
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_update_missing_stock_item(admin_client: AsyncClient):
    response = await admin_client.put("/admin/stock/nope", json={"name": "Bulbs", "quantity": 1})

    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_store_outage_is_bad_gateway(admin_client: AsyncClient, fake_store):
    fake_store.error = StoreError("connection reset")

    response = await admin_client.get("/admin/dashboard")

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
