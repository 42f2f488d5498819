"""
Tests for the MT5 account API endpoints.

Tests FastAPI routes with use cases wired to in-memory fakes.
Validates request validation, response schemas, auth and error mapping.
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from algoedge.application.mt5.connect_account import ConnectAccountUseCase
from algoedge.application.mt5.disconnect_account import DisconnectAccountUseCase
from algoedge.application.mt5.get_account import GetConnectedAccountUseCase
from algoedge.application.mt5.refresh_account import RefreshAccountUseCase
from algoedge.core.config import settings
from algoedge.domain.mt5.entities import AccountStatus, Mt5Account
from algoedge.domain.mt5.errors import ProviderError
from algoedge.infrastructure.database import get_session
from algoedge.interfaces.mt5.dependencies import (
    get_connect_account_use_case,
    get_connected_account_use_case,
    get_current_user_id,
    get_disconnect_account_use_case,
    get_refresh_account_use_case,
)
from algoedge.main import app
from algoedge.shared.security.rate_limiting import DEFAULT_RATE_LIMIT, limiter
from algoedge.shared.security.tokens import create_access_token
from fakes import (
    FakeProvider,
    InMemoryAccounts,
    InMemoryAuditLog,
    RecordingSleep,
    account_info,
    remote_account,
)

CONNECT_URL = "/api/user/mt5-account/connect"
ACCOUNT_URL = "/api/user/mt5-account"
REFRESH_URL = "/api/user/mt5-account/refresh"

VALID_BODY = {"accountId": "12345", "password": "p@ss", "server": "Broker-Live"}


async def _fake_session():
    yield MagicMock()


@pytest.fixture
def state():
    return SimpleNamespace(
        accounts=InMemoryAccounts(),
        audit_log=InMemoryAuditLog(),
        provider=FakeProvider(
            existing=[remote_account()],
            states=[remote_account()],
            balances=[account_info(1000, 1005)],
        ),
        sleep=RecordingSleep(),
    )


@pytest.fixture
def wired(state):
    """Route every use case to the in-memory fakes held by ``state``."""
    limiter.enabled = False
    app.dependency_overrides[get_session] = _fake_session
    app.dependency_overrides[get_connect_account_use_case] = lambda: ConnectAccountUseCase(
        accounts=state.accounts,
        audit_log=state.audit_log,
        provider=state.provider,
        sleep=state.sleep,
    )
    app.dependency_overrides[get_connected_account_use_case] = (
        lambda: GetConnectedAccountUseCase(state.accounts)
    )
    app.dependency_overrides[get_refresh_account_use_case] = lambda: RefreshAccountUseCase(
        state.accounts, state.provider
    )
    app.dependency_overrides[get_disconnect_account_use_case] = (
        lambda: DisconnectAccountUseCase(state.accounts, state.audit_log)
    )
    yield state
    app.dependency_overrides.clear()


@pytest.fixture
def client(wired) -> TestClient:
    """Client authenticated as user 1."""
    app.dependency_overrides[get_current_user_id] = lambda: 1
    return TestClient(app)


@pytest.fixture
def anonymous_client(wired) -> TestClient:
    """Client going through the real bearer-token dependency."""
    return TestClient(app)


def _seed_connected(state, user_id: int = 1, api_key: str = "meta-1") -> Mt5Account:
    return state.accounts.seed(
        Mt5Account(user_id=user_id, account_id="12345", server="Broker-Live", api_key=api_key)
    )


# ══════════════════════════════════════════════════════════════════════
# POST /api/user/mt5-account/connect
# ══════════════════════════════════════════════════════════════════════


class TestConnectEndpoint:
    def test_connects_existing_ready_account(self, client, wired):
        response = client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "MT5 account connected successfully"
        assert body["account"]["balance"] == 1000
        assert body["account"]["equity"] == 1005
        assert body["account"]["status"] == "connected"
        assert body["account"]["accountId"] == "12345"
        assert body["account"]["server"] == "Broker-Live"
        assert wired.provider.count("list") == 1
        assert wired.provider.count("create") == 0

    def test_password_is_not_returned(self, client):
        response = client.post(CONNECT_URL, json=VALID_BODY)
        assert "p@ss" not in response.text

    @pytest.mark.parametrize("missing", ["accountId", "password", "server"])
    def test_missing_field_is_400_without_remote_calls(self, client, wired, missing):
        body = {k: v for k, v in VALID_BODY.items() if k != missing}

        response = client.post(CONNECT_URL, json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid input data"
        assert response.json()["details"]
        assert wired.provider.total_calls == 0

    def test_empty_field_is_400(self, client, wired):
        response = client.post(CONNECT_URL, json={**VALID_BODY, "server": ""})

        assert response.status_code == 400
        assert "p@ss" not in response.text
        assert wired.provider.total_calls == 0

    def test_already_connected(self, client, wired):
        _seed_connected(wired)

        response = client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 400
        assert response.json()["error"] == (
            "You already have a connected MT5 account. Please disconnect it first."
        )
        assert wired.provider.total_calls == 0
        assert len(wired.accounts.rows) == 1

    def test_provider_not_configured(self, client, wired):
        wired.provider = FakeProvider(configured=False)

        response = client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 500
        assert "not configured" in response.json()["error"]
        assert wired.provider.total_calls == 0
        assert wired.accounts.writes == 0

    def test_deploy_failed(self, client, wired):
        wired.provider = FakeProvider(
            states=[remote_account(state="DEPLOY_FAILED", connection=None)]
        )

        response = client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 400
        assert "credentials" in response.json()["error"]
        assert wired.accounts.rows == {}

    def test_provisioning_rejected(self, client, wired):
        wired.provider = FakeProvider(
            create_error=ProviderError("create account", 400, "Invalid account credentials")
        )

        response = client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid account credentials"

    def test_zero_balance_still_succeeds(self, client, wired):
        wired.provider = FakeProvider(
            existing=[remote_account()], states=[remote_account()], balances=[account_info(0, 0)]
        )

        response = client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 200
        assert response.json()["account"]["balance"] == 0
        assert response.json()["account"]["equity"] == 0

    def test_forwarded_for_is_audited(self, client, wired):
        client.post(
            CONNECT_URL,
            json=VALID_BODY,
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        )

        assert wired.audit_log.entries[0].ip_address == "203.0.113.9"


# ══════════════════════════════════════════════════════════════════════
# GET / refresh / disconnect
# ══════════════════════════════════════════════════════════════════════


class TestGetAccountEndpoint:
    def test_no_account(self, client):
        response = client.get(ACCOUNT_URL)

        assert response.status_code == 200
        assert response.json() == {"account": None}

    def test_connected_account(self, client, wired):
        stored = _seed_connected(wired)

        response = client.get(ACCOUNT_URL)

        account = response.json()["account"]
        assert account["id"] == stored.id
        assert account["accountId"] == "12345"
        assert "connectedAt" in account
        assert wired.provider.total_calls == 0


class TestRefreshEndpoint:
    def test_refresh(self, client, wired):
        _seed_connected(wired)
        wired.provider = FakeProvider(balances=[account_info(1500, 1510)])

        response = client.post(REFRESH_URL)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Account refreshed successfully"
        assert body["account"]["balance"] == 1500
        assert body["account"]["lastSync"] is not None
        assert "freeMargin" in body["account"]

    def test_no_connected_account(self, client):
        assert client.post(REFRESH_URL).status_code == 404

    def test_not_provisioned(self, client, wired):
        _seed_connected(wired, api_key=None)
        response = client.post(REFRESH_URL)
        assert response.status_code == 400
        assert response.json()["error"] == "Account not properly provisioned with MetaAPI"

    def test_provider_failure_is_502(self, client, wired):
        class DownProvider(FakeProvider):
            async def get_account_information(self, remote_id):
                raise ProviderError("account information", 500)

        _seed_connected(wired)
        wired.provider = DownProvider()

        response = client.post(REFRESH_URL)

        assert response.status_code == 502


class TestDisconnectEndpoint:
    def test_disconnect(self, client, wired):
        stored = _seed_connected(wired)

        response = client.post(f"{ACCOUNT_URL}/{stored.id}/disconnect")

        assert response.status_code == 200
        assert response.json() == {"message": "MT5 account disconnected successfully"}
        assert wired.accounts.rows[stored.id].status is AccountStatus.DISCONNECTED

    def test_other_users_account(self, client, wired):
        stored = _seed_connected(wired, user_id=2)

        response = client.post(f"{ACCOUNT_URL}/{stored.id}/disconnect")

        assert response.status_code == 404
        assert wired.accounts.rows[stored.id].is_connected

    def test_unknown_account(self, client):
        assert client.post(f"{ACCOUNT_URL}/999/disconnect").status_code == 404


# ══════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════


class TestAuthentication:
    def test_missing_header(self, anonymous_client, wired):
        response = anonymous_client.post(CONNECT_URL, json=VALID_BODY)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert wired.provider.total_calls == 0

    def test_garbage_token(self, anonymous_client):
        response = anonymous_client.get(
            ACCOUNT_URL, headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_wrong_secret(self, anonymous_client):
        token = create_access_token(1, secret="some-other-secret")
        response = anonymous_client.get(
            ACCOUNT_URL, headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_expired_token(self, anonymous_client):
        token = create_access_token(1, expires_delta=timedelta(seconds=-30))
        response = anonymous_client.get(
            ACCOUNT_URL, headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Token expired"

    def test_valid_token_for_active_user(self, anonymous_client):
        users = MagicMock()
        users.return_value.is_active_user = AsyncMock(return_value=True)
        token = create_access_token(1)

        with patch("algoedge.interfaces.mt5.dependencies.UserRepositoryAdapter", users):
            response = anonymous_client.get(
                ACCOUNT_URL, headers={"Authorization": f"Bearer {token}"}
            )

        assert response.status_code == 200
        users.return_value.is_active_user.assert_awaited_once_with(1)

    def test_inactive_user(self, anonymous_client):
        users = MagicMock()
        users.return_value.is_active_user = AsyncMock(return_value=False)
        token = create_access_token(3)

        with patch("algoedge.interfaces.mt5.dependencies.UserRepositoryAdapter", users):
            response = anonymous_client.get(
                ACCOUNT_URL, headers={"Authorization": f"Bearer {token}"}
            )

        assert response.status_code == 401


# ══════════════════════════════════════════════════════════════════════
# Cross-cutting
# ══════════════════════════════════════════════════════════════════════


class TestHealthEndpoint:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_reports_missing_metaapi_token(self, client):
        with patch.object(settings, "metaapi_token", None):
            body = client.get("/api/health").json()

        assert body["metaapi_configured"] is False
        assert body["rate_limiting"] is False

    def test_reports_configured_metaapi_token(self, client):
        with patch.object(settings, "metaapi_token", "token"):
            body = client.get("/api/health").json()

        assert body["metaapi_configured"] is True
        assert "token" not in body.values()


class TestSecurityHeaders:
    def test_security_headers_present(self, client):
        response = client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Content-Security-Policy" in response.headers

    def test_headers_on_error_responses(self, client):
        response = client.post(CONNECT_URL, json={})

        assert response.status_code == 400
        assert response.headers["X-Frame-Options"] == "DENY"


class TestUnexpectedErrors:
    def test_internal_details_are_hidden(self, wired):
        failing = MagicMock()
        failing.execute = AsyncMock(side_effect=RuntimeError("db password is hunter2"))
        app.dependency_overrides[get_current_user_id] = lambda: 1
        app.dependency_overrides[get_connected_account_use_case] = lambda: failing

        response = TestClient(app, raise_server_exceptions=False).get(ACCOUNT_URL)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestRateLimiting:
    def test_connect_rate_limit_returns_429(self, client):
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                client.post(CONNECT_URL, json=VALID_BODY).status_code for _ in range(11)
            ]
        finally:
            limiter.enabled = False
            limiter.reset()

        assert statuses[0] == 200
        assert statuses[-1] == 429

    def test_default_limit_applies_to_undecorated_routes(self, client):
        allowed = int(DEFAULT_RATE_LIMIT.split("/")[0])
        limiter.reset()
        limiter.enabled = True
        try:
            responses = [client.get(ACCOUNT_URL) for _ in range(allowed + 1)]
        finally:
            limiter.enabled = False
            limiter.reset()

        assert responses[0].status_code == 200
        assert responses[-1].status_code == 429
        assert responses[-1].json()["error"] == "Rate limit exceeded"

    def test_health_is_exempt(self, client):
        limiter.reset()
        limiter.enabled = True
        try:
            allowed = int(DEFAULT_RATE_LIMIT.split("/")[0])
            statuses = {client.get("/api/health").status_code for _ in range(allowed + 5)}
        finally:
            limiter.enabled = False
            limiter.reset()

        assert statuses == {200}


class TestApplicationEntryPoint:
    def test_asgi_app_mounts_every_route_under_api(self):
        paths = {route.path for route in app.routes}

        assert {
            "/api/health",
            CONNECT_URL,
            ACCOUNT_URL,
            REFRESH_URL,
            "/api/user/mt5-account/{account_pk}/disconnect",
        } <= paths
        assert not any(path.startswith("/user") for path in paths)
