"""
Adapter: MetaAPI cloud client.

Implements TradingAccountProvider port over MetaAPI's REST surfaces:
- Provisioning API: list/create/deploy/undeploy/status of account proxies
- Client API: live account information (balance, equity, margin)

Authentication is the ``auth-token`` header. The token is never logged.
Every failure (transport error, timeout, non-2xx reply) surfaces as
ProviderError so callers decide whether to retry, continue or abort.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from algoedge.domain.mt5.entities import (
    AccountInformation,
    BrokerCredentials,
    ProvisioningSchedule,
    RemoteAccount,
)
from algoedge.domain.mt5.errors import ProviderError
from algoedge.domain.mt5.ports import TradingAccountProvider

logger = logging.getLogger(__name__)

ACCOUNTS_PATH = "/users/current/accounts"


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def _remote_account(payload: dict[str, Any]) -> RemoteAccount:
    """Map a provisioning API account document.

    The list endpoint names the id ``_id``; single-account documents use ``id``.
    """
    return RemoteAccount(
        id=str(payload.get("_id") or payload.get("id") or ""),
        login=str(payload.get("login", "")),
        server=payload.get("server", ""),
        state=payload.get("state", ""),
        connection_status=payload.get("connectionStatus"),
    )


class MetaApiClient(TradingAccountProvider):
    """httpx-based MetaAPI adapter.

    Args:
        token: MetaAPI auth token. ``None`` or empty means not configured;
            no request is ever sent in that case.
        provisioning_url: Base URL of the provisioning API.
        client_url: Base URL of the client API.
        timeout: Per-request timeout in seconds.
        verify_ssl: Verify TLS certificates.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        token: Optional[str],
        provisioning_url: str,
        client_url: str,
        timeout: float = 30.0,
        verify_ssl: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self._provisioning_url = provisioning_url.rstrip("/")
        self._client_url = client_url.rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
            headers={"auth-token": token or ""},
        )

    def is_configured(self) -> bool:
        return bool(self._token)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_accounts(self) -> list[RemoteAccount]:
        payload = await self._request(
            "list accounts", "GET", f"{self._provisioning_url}{ACCOUNTS_PATH}"
        )
        if not isinstance(payload, list):
            return []
        return [_remote_account(item) for item in payload if isinstance(item, dict)]

    async def create_account(
        self, credentials: BrokerCredentials, schedule: ProvisioningSchedule
    ) -> str:
        body = {
            "name": schedule.display_name(credentials.login),
            "type": schedule.account_type,
            "login": credentials.login,
            "password": credentials.password,
            "server": credentials.server,
            "platform": schedule.platform,
            "magic": schedule.magic,
        }
        payload = await self._request(
            "create account", "POST", f"{self._provisioning_url}{ACCOUNTS_PATH}", json=body
        )
        remote_id = (payload or {}).get("id") or (payload or {}).get("_id")
        if not remote_id:
            raise ProviderError("create account", provider_message="No account id returned")
        return str(remote_id)

    async def deploy_account(self, remote_id: str) -> None:
        await self._request(
            "deploy account",
            "POST",
            f"{self._provisioning_url}{ACCOUNTS_PATH}/{remote_id}/deploy",
        )

    async def undeploy_account(self, remote_id: str) -> None:
        await self._request(
            "undeploy account",
            "POST",
            f"{self._provisioning_url}{ACCOUNTS_PATH}/{remote_id}/undeploy",
        )

    async def get_account(self, remote_id: str) -> RemoteAccount:
        payload = await self._request(
            "get account", "GET", f"{self._provisioning_url}{ACCOUNTS_PATH}/{remote_id}"
        )
        account = _remote_account(payload or {})
        if not account.id:
            account = RemoteAccount(
                id=remote_id,
                login=account.login,
                server=account.server,
                state=account.state,
                connection_status=account.connection_status,
            )
        return account

    async def get_account_information(self, remote_id: str) -> AccountInformation:
        payload = await self._request(
            "account information",
            "GET",
            f"{self._client_url}{ACCOUNTS_PATH}/{remote_id}/account-information",
        )
        payload = payload or {}
        return AccountInformation(
            balance=_decimal(payload.get("balance")),
            equity=_decimal(payload.get("equity")),
            margin=_decimal(payload.get("margin")),
            free_margin=_decimal(payload.get("freeMargin")),
            currency=payload.get("currency"),
        )

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        if not self._token:
            raise ProviderError(operation, provider_message="MetaAPI token is not configured")

        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("MetaAPI %s transport error: %s", operation, type(exc).__name__)
            raise ProviderError(operation, provider_message=str(exc) or None) from exc

        if response.is_error:
            message = self._error_message(response)
            logger.warning(
                "MetaAPI %s returned %d: %s", operation, response.status_code, message
            )
            raise ProviderError(operation, response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                operation, response.status_code, "Malformed response body"
            ) from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return response.text or None
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None
