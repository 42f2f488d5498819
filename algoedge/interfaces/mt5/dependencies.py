"""
Dependency injection for the MT5 bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the MT5 context: every request gets
its own database session and its own MetaAPI HTTP client.
"""

from typing import AsyncIterator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from algoedge.application.mt5.connect_account import ConnectAccountUseCase
from algoedge.application.mt5.disconnect_account import DisconnectAccountUseCase
from algoedge.application.mt5.get_account import GetConnectedAccountUseCase
from algoedge.application.mt5.refresh_account import RefreshAccountUseCase
from algoedge.core.config import settings
from algoedge.domain.mt5.errors import AuthenticationError
from algoedge.infrastructure.database import get_session
from algoedge.infrastructure.mt5.account_repository import Mt5AccountRepositoryAdapter
from algoedge.infrastructure.mt5.audit_log_repository import AuditLogRepositoryAdapter
from algoedge.infrastructure.mt5.metaapi_client import MetaApiClient
from algoedge.infrastructure.mt5.user_repository import UserRepositoryAdapter
from algoedge.shared.security.tokens import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> int:
    """Resolve the bearer token to an active user id.

    Raises:
        AuthenticationError: Missing header, bad token, or unknown/inactive user.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized")
    user_id = decode_access_token(credentials.credentials)
    if not await UserRepositoryAdapter(session).is_active_user(user_id):
        raise AuthenticationError("Invalid token")
    return user_id


async def get_metaapi_client() -> AsyncIterator[MetaApiClient]:
    """Build a MetaAPI client for one request and close it afterwards."""
    client = MetaApiClient(
        token=settings.metaapi_token,
        provisioning_url=settings.metaapi_provisioning_url,
        client_url=settings.metaapi_client_url,
        timeout=settings.metaapi_timeout_seconds,
        verify_ssl=settings.metaapi_verify_ssl,
    )
    try:
        yield client
    finally:
        await client.aclose()


def get_connect_account_use_case(
    session: AsyncSession = Depends(get_session),
    provider: MetaApiClient = Depends(get_metaapi_client),
) -> ConnectAccountUseCase:
    """Build ConnectAccountUseCase with its infrastructure dependencies."""
    return ConnectAccountUseCase(
        accounts=Mt5AccountRepositoryAdapter(session),
        audit_log=AuditLogRepositoryAdapter(session),
        provider=provider,
        deadline_seconds=settings.connect_deadline_seconds,
    )


def get_connected_account_use_case(
    session: AsyncSession = Depends(get_session),
) -> GetConnectedAccountUseCase:
    return GetConnectedAccountUseCase(accounts=Mt5AccountRepositoryAdapter(session))


def get_refresh_account_use_case(
    session: AsyncSession = Depends(get_session),
    provider: MetaApiClient = Depends(get_metaapi_client),
) -> RefreshAccountUseCase:
    return RefreshAccountUseCase(
        accounts=Mt5AccountRepositoryAdapter(session),
        provider=provider,
    )


def get_disconnect_account_use_case(
    session: AsyncSession = Depends(get_session),
) -> DisconnectAccountUseCase:
    return DisconnectAccountUseCase(
        accounts=Mt5AccountRepositoryAdapter(session),
        audit_log=AuditLogRepositoryAdapter(session),
    )
