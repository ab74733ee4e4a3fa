import pytest
from fastapi import status
from httpx import AsyncClient

from reztek_service.config import settings
from reztek_service.crud import maintenance_crud
from reztek_service.crud.feedback_crud import FEEDBACK_TABLE
from reztek_service.crud.maintenance_crud import REQUESTS_TABLE
from reztek_service.crud.principal_crud import TENANTS_TABLE
from reztek_service.errors import StoreError
from tests.fixtures.auth import ADMIN_EMAIL
from tests.fixtures.helpers import request_record, tenant_record

REGISTRATION = {
    "name": "Thandi",
    "surname": "Mokoena",
    "email": "thandi@example.com",
    "contact_number": "0821234567",
    "room_number": "B204",
    "residence": "Observatory",
    "tenant_code": "OBS-204",
    "password": "s3cret-pass",
}


@pytest.fixture
def tenant(fake_auth, fake_store):
    user_id = fake_auth.register("thandi@example.com", "s3cret-pass")
    (record,) = fake_store.seed(TENANTS_TABLE, tenant_record(id=user_id))
    return record


@pytest.fixture
def tenant_headers(tenant, fake_auth):
    token = fake_auth.issue_token(tenant["id"], tenant["email"])
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_register_creates_account_and_tenant_record(client: AsyncClient, fake_auth, fake_store):
    response = await client.post("/api/tenant/register", json=REGISTRATION)

    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["email"] == "thandi@example.com"
    assert "password" not in body
    (record,) = fake_store.rows(TENANTS_TABLE)
    assert record["id"] == fake_auth.accounts["thandi@example.com"][0]
    assert record["tenant_code"] == "OBS-204"
    assert record["created_at"]


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client: AsyncClient, tenant):
    response = await client.post("/api/tenant/register", json=REGISTRATION)

    assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_register_existing_provider_account_conflicts(client: AsyncClient, fake_auth, fake_store):
    fake_auth.register("thandi@example.com", "other")

    response = await client.post("/api/tenant/register", json=REGISTRATION)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert fake_store.rows(TENANTS_TABLE) == []


@pytest.mark.asyncio
async def test_register_store_failure_removes_account_so_retry_succeeds(
    client: AsyncClient, fake_auth, fake_store
):
    fake_store.fail_once(TENANTS_TABLE, "insert", StoreError("connection reset"))

    failed = await client.post("/api/tenant/register", json=REGISTRATION)

    assert failed.status_code == status.HTTP_502_BAD_GATEWAY
    assert fake_auth.accounts == {}
    fake_auth.admin_client.auth.admin.delete_user.assert_awaited_once()

    retried = await client.post("/api/tenant/register", json=REGISTRATION)
    assert retried.status_code == status.HTTP_201_CREATED, retried.text

    login = await client.post(
        "/api/tenant/login", json={"email": "thandi@example.com", "password": "s3cret-pass"}
    )
    assert login.status_code == status.HTTP_200_OK, login.text


@pytest.mark.asyncio
async def test_register_contact_number_must_be_digits(client: AsyncClient):
    response = await client.post(
        "/api/tenant/register", json={**REGISTRATION, "contact_number": "+27 82 123"}
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_login_returns_bearer_token_and_cookie(client: AsyncClient, tenant):
    response = await client.post(
        "/api/tenant/login", json={"email": "thandi@example.com", "password": "s3cret-pass"}
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["token_type"] == "bearer"
    assert response.cookies.get("session") == f"standard.{body['access_token']}"

    by_bearer = await client.get(
        "/api/tenant/profile", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    by_cookie = await client.get("/api/tenant/profile")
    assert by_bearer.json()["id"] == tenant["id"]
    assert by_cookie.json()["id"] == tenant["id"]


@pytest.mark.asyncio
async def test_admin_cannot_use_tenant_login(client: AsyncClient, fake_auth):
    fake_auth.register(ADMIN_EMAIL, "admin-pass")

    response = await client.post("/api/tenant/login", json={"email": ADMIN_EMAIL, "password": "admin-pass"})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert "set-cookie" not in response.headers


@pytest.mark.asyncio
async def test_password_reset_for_tenant(client: AsyncClient, fake_auth):
    response = await client.post("/api/tenant/password-reset", json={"email": "Thandi@example.com"})

    assert response.status_code == status.HTTP_200_OK
    fake_auth.verify_client.auth.reset_password_for_email.assert_awaited_once_with(
        "thandi@example.com", {"redirect_to": settings.PASSWORD_RESET_REDIRECT_URL}
    )


@pytest.mark.asyncio
async def test_password_reset_refused_for_admin(client: AsyncClient, fake_auth):
    response = await client.post("/api/tenant/password-reset", json={"email": ADMIN_EMAIL})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    fake_auth.verify_client.auth.reset_password_for_email.assert_not_awaited()


@pytest.mark.asyncio
async def test_profile_requires_authentication(client: AsyncClient, negotiator):
    anonymous = await client.get("/api/tenant/profile")
    admin_cookie = await client.get(
        "/api/tenant/profile",
        headers={"Cookie": f"session={negotiator.direct_session_for(ADMIN_EMAIL)}"},
    )

    assert anonymous.status_code == status.HTTP_401_UNAUTHORIZED
    assert admin_cookie.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_authenticated_user_without_tenant_record_is_forbidden(client: AsyncClient, fake_auth):
    token = fake_auth.issue_token("ghost", "ghost@example.com")

    response = await client.get("/api/tenant/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_update_contact_number(client: AsyncClient, tenant, tenant_headers, fake_store):
    unchanged = await client.patch(
        "/api/tenant/profile", json={"contact_number": tenant["contact_number"]}, headers=tenant_headers
    )
    changed = await client.patch(
        "/api/tenant/profile", json={"contact_number": "0839998888"}, headers=tenant_headers
    )
    other_field = await client.patch(
        "/api/tenant/profile", json={"contact_number": "0831112222", "room_number": "A1"}, headers=tenant_headers
    )

    assert unchanged.status_code == status.HTTP_400_BAD_REQUEST
    assert changed.status_code == status.HTTP_200_OK
    assert changed.json()["contact_number"] == "0839998888"
    assert fake_store.rows(TENANTS_TABLE)[0]["contact_number"] == "0839998888"
    assert other_field.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_submit_and_list_requests(client: AsyncClient, tenant, tenant_headers, fake_store):
    created = await client.post(
        "/api/tenant/requests",
        json={"issue_location": "Kitchen", "urgency_level": "High", "description": "Stove sparks"},
        headers=tenant_headers,
    )
    assert created.status_code == status.HTTP_201_CREATED, created.text
    assert created.json()["status"] == "Pending"
    assert created.json()["room_number"] == tenant["room_number"]

    fake_store.seed(
        REQUESTS_TABLE,
        request_record(tenant, status="Completed", submitted_at="2026-01-01T08:00:00+00:00"),
        request_record(tenant_record(), status="Pending"),
    )

    listed = await client.get("/api/tenant/requests", headers=tenant_headers)

    body = listed.json()
    assert [item["issue_location"] for item in body["active"]] == ["Kitchen"]
    assert [item["status"] for item in body["past"]] == ["Completed"]


@pytest.mark.asyncio
async def test_image_upload_for_high_urgency_request(client: AsyncClient, tenant, tenant_headers, fake_store):
    (stored,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, urgency_level="High"))

    response = await client.post(
        f"/api/tenant/requests/{stored['id']}/image",
        files={"file": ("burst pipe.png", b"\x89PNG\r\n", "image/png")},
        headers=tenant_headers,
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    url = response.json()["image_url"]
    assert f"/{stored['id']}/" in url and url.endswith("_burst_pipe.png")
    assert fake_store.rows(REQUESTS_TABLE)[0]["image_url"] == url
    fake_store.storage.from_.assert_called_with(settings.STORAGE_BUCKET)


@pytest.mark.asyncio
async def test_image_upload_rules(client: AsyncClient, tenant, tenant_headers, fake_store):
    (medium,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, urgency_level="Medium"))
    (high,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, urgency_level="High"))
    (foreign,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant_record(), urgency_level="High"))
    png = {"file": ("a.png", b"\x89PNG", "image/png")}

    not_high = await client.post(f"/api/tenant/requests/{medium['id']}/image", files=png, headers=tenant_headers)
    wrong_type = await client.post(
        f"/api/tenant/requests/{high['id']}/image",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=tenant_headers,
    )
    not_owner = await client.post(f"/api/tenant/requests/{foreign['id']}/image", files=png, headers=tenant_headers)

    assert not_high.status_code == status.HTTP_400_BAD_REQUEST
    assert wrong_type.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    assert not_owner.status_code == status.HTTP_404_NOT_FOUND
    fake_store.bucket.upload.assert_not_awaited()


@pytest.mark.asyncio
async def test_feedback_on_completed_request(client: AsyncClient, tenant, tenant_headers, fake_store):
    (stored,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, status="Completed"))

    response = await client.post(
        f"/api/tenant/requests/{stored['id']}/feedback",
        json={"rating": 4, "comment": "Fixed the same day"},
        headers=tenant_headers,
    )
    again = await client.post(
        f"/api/tenant/requests/{stored['id']}/feedback", json={"rating": 5}, headers=tenant_headers
    )

    assert response.status_code == status.HTTP_201_CREATED, response.text
    assert response.json()["rating"] == 4
    assert len(fake_store.rows(FEEDBACK_TABLE)) == 1
    assert fake_store.rows(REQUESTS_TABLE)[0]["has_feedback"] is True
    assert fake_store.rows(REQUESTS_TABLE)[0]["rating"] == 4
    assert again.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_feedback_rules(client: AsyncClient, tenant, tenant_headers, fake_store):
    (pending,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, status="Pending"))
    (completed,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, status="Completed"))

    not_done = await client.post(
        f"/api/tenant/requests/{pending['id']}/feedback", json={"rating": 3}, headers=tenant_headers
    )
    out_of_range = await client.post(
        f"/api/tenant/requests/{completed['id']}/feedback", json={"rating": 9}, headers=tenant_headers
    )

    assert not_done.status_code == status.HTTP_400_BAD_REQUEST
    assert out_of_range.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_feedback_rated_concurrently_is_conflict(
    client: AsyncClient, tenant, tenant_headers, fake_store, monkeypatch
):
    (stored,) = fake_store.seed(
        REQUESTS_TABLE, request_record(tenant, status="Completed", has_feedback=True, rating=2)
    )
    stale = {**stored, "has_feedback": False, "rating": None}

    async def stale_read(store, request_id):
        return dict(stale)

    monkeypatch.setattr(maintenance_crud, "get_request", stale_read)

    response = await client.post(
        f"/api/tenant/requests/{stored['id']}/feedback", json={"rating": 5}, headers=tenant_headers
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert fake_store.rows(FEEDBACK_TABLE) == []
    assert fake_store.rows(REQUESTS_TABLE)[0]["rating"] == 2


@pytest.mark.asyncio
async def test_feedback_write_failure_releases_request(
    client: AsyncClient, tenant, tenant_headers, fake_store
):
    (stored,) = fake_store.seed(REQUESTS_TABLE, request_record(tenant, status="Completed"))
    fake_store.fail_once(FEEDBACK_TABLE, "insert", StoreError("connection reset"))
    url = f"/api/tenant/requests/{stored['id']}/feedback"

    failed = await client.post(url, json={"rating": 4}, headers=tenant_headers)

    assert failed.status_code == status.HTTP_502_BAD_GATEWAY
    assert fake_store.rows(REQUESTS_TABLE)[0]["has_feedback"] is False
    assert fake_store.rows(FEEDBACK_TABLE) == []

    retried = await client.post(url, json={"rating": 4}, headers=tenant_headers)
    assert retried.status_code == status.HTTP_201_CREATED
    assert len(fake_store.rows(FEEDBACK_TABLE)) == 1
