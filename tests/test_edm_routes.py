try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import timedelta

import httpx
import pytest

from edm_sync.main import app
from edm_sync.clients import EDMApiClient, EDMOAuthClient
from edm_sync.services import (
    AccessTokenProvider,
    BatchRefreshScheduler,
    CredentialLoginService,
    TokenRefresher,
)

from _fakes import form_body

ADMIN_HEADERS = {"Authorization": "Bearer route-admin-key"}


class FakeEDM:
    """Single MockTransport handler standing in for the token and API endpoints."""

    def __init__(self) -> None:
        self.token_status = 200
        self.token_payload: dict = {"access_token": "fresh-access", "expires_in": 3600}
        self.grants: list[dict] = []
        self.api_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/o/token/"):
            self.grants.append(form_body(request))
            if self.token_status != 200:
                return httpx.Response(
                    self.token_status, text="upstream says: refresh token revoked"
                )
            return httpx.Response(200, json=self.token_payload)
        self.api_requests.append(request)
        return httpx.Response(200, json=[{"id": 7, "name": "Cardiology"}])


@pytest.fixture()
def edm_overrides(store, cipher, clock, edm_settings):
    from edm_sync import dependencies
    from edm_sync.core.config import get_settings

    fake = FakeEDM()
    transport = httpx.MockTransport(fake)
    oauth = EDMOAuthClient(edm_settings, transport=transport)
    refresher = TokenRefresher(store, oauth, cipher, clock=clock)
    provider = AccessTokenProvider(store, refresher, cipher, clock=clock)
    scheduler = BatchRefreshScheduler(store, refresher, batch_size=10, clock=clock)
    login_service = CredentialLoginService(store, oauth, cipher, clock=clock)
    api_client = EDMApiClient(edm_settings, provider, transport=transport)

    settings = get_settings().model_copy(deep=True)
    settings.security.admin_refresh_key = "route-admin-key"

    app.dependency_overrides.update(
        {
            dependencies.get_credential_store: lambda: store,
            dependencies.get_refresh_scheduler: lambda: scheduler,
            dependencies.get_credential_login_service: lambda: login_service,
            dependencies.get_edm_api_client: lambda: api_client,
            dependencies.get_app_settings: lambda: settings,
        }
    )

    yield fake, settings

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


@pytest.mark.anyio
async def test_health() -> None:
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer wrong"},
        {"Authorization": "route-admin-key"},
        {"X-Admin-Key": "wrong"},
    ],
)
async def test_admin_endpoints_reject_bad_credentials(edm_overrides, headers) -> None:
    async with _client() as client:
        response = await client.post("/api/edm/refresh-all", headers=headers)

    assert response.status_code == 401


@pytest.mark.anyio
async def test_admin_endpoints_refuse_everything_without_configured_key(
    edm_overrides,
) -> None:
    _, settings = edm_overrides
    settings.security.admin_refresh_key = None

    async with _client() as client:
        response = await client.post(
            "/api/edm/refresh-all", headers={"Authorization": "Bearer "}
        )

    assert response.status_code == 401


@pytest.mark.anyio
async def test_refresh_all_returns_per_entry_outcomes(edm_overrides, seed_entry) -> None:
    first = seed_entry("refresh-1")
    second = seed_entry("refresh-2")

    async with _client() as client:
        response = await client.post(
            "/api/edm/refresh-all", headers={"X-Admin-Key": "route-admin-key"}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["processed"] == 2
    assert {item["id"] for item in data["results"]} == {first.id, second.id}
    assert all(item["ok"] for item in data["results"])
    assert "fresh-access" not in response.text


@pytest.mark.anyio
async def test_refresh_due_reports_failures_with_details(
    edm_overrides, seed_entry, clock
) -> None:
    fake, _ = edm_overrides
    fake.token_status = 400
    entry = seed_entry()
    clock.advance(hours=9)

    async with _client() as client:
        response = await client.post("/api/edm/refresh-due", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    [item] = response.json()["results"]
    assert item["id"] == entry.id
    assert item["ok"] is False
    assert item["error"] == "UpstreamRejected"
    assert "refresh token revoked" in item["details"]


@pytest.mark.anyio
async def test_refresh_one(edm_overrides, seed_entry, store) -> None:
    entry = seed_entry()

    async with _client() as client:
        response = await client.post(
            "/api/edm/refresh-one", json={"id": entry.id}, headers=ADMIN_HEADERS
        )
        missing = await client.post(
            "/api/edm/refresh-one", json={"id": "nope"}, headers=ADMIN_HEADERS
        )

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert store.get_entry(entry.id).last_refreshed_at is not None
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_status_never_exposes_token_material(edm_overrides, seed_entry) -> None:
    async with _client() as client:
        empty = await client.get("/api/edm/status")
        entry = seed_entry("secret-refresh", access_token="secret-access")
        populated = await client.get("/api/edm/status")

    assert empty.json()["logged_in"] is False
    data = populated.json()
    assert data["logged_in"] is True
    assert data["id"] == entry.id
    assert data["refresh_failure_count"] == 0
    assert "secret" not in populated.text
    assert entry.encrypted_refresh_token not in populated.text


@pytest.mark.anyio
async def test_login_stores_encrypted_credential(edm_overrides, store, cipher) -> None:
    fake, _ = edm_overrides
    fake.token_payload = {
        "access_token": "login-access",
        "refresh_token": "login-refresh",
        "expires_in": 600,
    }

    async with _client() as client:
        response = await client.post(
            "/api/edm/login",
            json={"username": "doctor", "password": "pw"},
            headers=ADMIN_HEADERS,
        )

    assert response.status_code == 201
    assert fake.grants[-1]["grant_type"] == "password"
    entry = store.find_active_most_recent()
    assert entry.id == response.json()["id"]
    assert cipher.decrypt(entry.encrypted_refresh_token) == "login-refresh"
    assert cipher.matches("login-refresh", entry.refresh_token_hash)
    assert "login-access" not in response.text


@pytest.mark.anyio
async def test_login_failure_maps_to_bad_gateway(edm_overrides, store) -> None:
    fake, _ = edm_overrides
    fake.token_status = 401

    async with _client() as client:
        response = await client.post(
            "/api/edm/login",
            json={"username": "doctor", "password": "wrong"},
            headers=ADMIN_HEADERS,
        )

    assert response.status_code == 502
    assert response.json()["detail"] == "edm_login_failed"
    assert store.find_active_most_recent() is None


@pytest.mark.anyio
async def test_revoke_is_terminal(edm_overrides, seed_entry, store) -> None:
    entry = seed_entry()

    async with _client() as client:
        response = await client.post(
            f"/api/edm/credentials/{entry.id}/revoke", headers=ADMIN_HEADERS
        )
        missing = await client.post(
            "/api/edm/credentials/unknown/revoke", headers=ADMIN_HEADERS
        )
        status = await client.get("/api/edm/status")

    assert response.json() == {"id": entry.id, "revoked": True}
    assert missing.status_code == 404
    assert status.json()["logged_in"] is False
    assert store.get_entry(entry.id).revoked is True


@pytest.mark.anyio
async def test_departments_proxy_uses_cached_token(
    edm_overrides, seed_entry, clock
) -> None:
    fake, _ = edm_overrides
    seed_entry(access_token="cached-access", expires_at=clock.now + timedelta(hours=1))

    async with _client() as client:
        response = await client.get("/api/edm/departments")

    assert response.status_code == 200
    assert response.json() == [{"id": 7, "name": "Cardiology"}]
    assert fake.grants == []
    [request] = fake.api_requests
    assert request.url.path == "/ext_api/departments/"
    assert request.headers["authorization"] == "Bearer cached-access"


@pytest.mark.anyio
async def test_departments_proxy_reports_unavailable_integration(
    edm_overrides, seed_entry, clock
) -> None:
    fake, _ = edm_overrides
    fake.token_status = 400
    seed_entry(access_token="expired", expires_at=clock.now - timedelta(minutes=5))

    async with _client() as client:
        response = await client.get("/api/edm/departments")

    assert response.status_code == 503
    assert response.json() == {"detail": "edm_unavailable"}
    assert "refresh token revoked" not in response.text
    assert fake.api_requests == []


@pytest.mark.anyio
async def test_departments_proxy_without_credentials(edm_overrides) -> None:
    async with _client() as client:
        response = await client.get("/api/edm/departments")

    assert response.status_code == 404
