"""
FastAPI router for the MT5 bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from fastapi import APIRouter, Depends, Request

from algoedge.application.mt5.connect_account import ConnectAccountUseCase
from algoedge.application.mt5.disconnect_account import DisconnectAccountUseCase
from algoedge.application.mt5.dtos import (
    AccountSummaryResult,
    ConnectAccountCommand,
    DisconnectAccountCommand,
    RefreshAccountCommand,
)
from algoedge.application.mt5.get_account import GetConnectedAccountUseCase
from algoedge.application.mt5.refresh_account import RefreshAccountUseCase
from algoedge.interfaces.mt5.dependencies import (
    get_connect_account_use_case,
    get_connected_account_use_case,
    get_current_user_id,
    get_disconnect_account_use_case,
    get_refresh_account_use_case,
)
from algoedge.interfaces.mt5.schemas import (
    AccountDetailsItem,
    AccountItem,
    ConnectAccountRequest,
    ConnectAccountResponse,
    DisconnectAccountResponse,
    GetAccountResponse,
    RefreshAccountResponse,
    RefreshedAccountItem,
)
from algoedge.interfaces.schemas import ErrorResponse
from algoedge.shared.security.rate_limiting import CONNECT_RATE_LIMIT, limiter

router = APIRouter(prefix="/user/mt5-account", tags=["mt5"])


def _client_ip(request: Request) -> str:
    """First address of X-Forwarded-For, or empty when absent."""
    forwarded = request.headers.get("x-forwarded-for", "")
    return forwarded.split(",")[0].strip()


def _account_item(result: AccountSummaryResult) -> AccountItem:
    return AccountItem(
        id=result.id,
        account_id=result.account_id,
        server=result.server,
        status=result.status,
        balance=float(result.balance),
        equity=float(result.equity),
    )


@router.post(
    "/connect",
    response_model=ConnectAccountResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Connect an MT5 account",
    description=(
        "Validate broker credentials through MetaAPI, deploy the account "
        "proxy and store the account with its first balance reading."
    ),
)
@limiter.limit(CONNECT_RATE_LIMIT)
async def connect_account(
    request: Request,
    body: ConnectAccountRequest,
    user_id: int = Depends(get_current_user_id),
    use_case: ConnectAccountUseCase = Depends(get_connect_account_use_case),
) -> ConnectAccountResponse:
    """Link the caller's MT5 account."""
    command = ConnectAccountCommand(
        user_id=user_id,
        account_id=body.account_id,
        password=body.password,
        server=body.server,
        ip_address=_client_ip(request),
    )
    result = await use_case.execute(command, should_abort=request.is_disconnected)
    return ConnectAccountResponse(
        message="MT5 account connected successfully",
        account=_account_item(result),
    )


@router.get(
    "",
    response_model=GetAccountResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Get the connected MT5 account",
    description="Returns the stored account, or null when none is connected.",
)
async def get_account(
    user_id: int = Depends(get_current_user_id),
    use_case: GetConnectedAccountUseCase = Depends(get_connected_account_use_case),
) -> GetAccountResponse:
    result = await use_case.execute(user_id)
    if result is None:
        return GetAccountResponse(account=None)
    return GetAccountResponse(
        account=AccountDetailsItem(
            **_account_item(result).model_dump(),
            connected_at=result.connected_at,
            last_sync=result.last_sync,
        )
    )


@router.post(
    "/refresh",
    response_model=RefreshAccountResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Refresh balance and equity",
    description="Re-reads account information from MetaAPI and stores it.",
)
async def refresh_account(
    user_id: int = Depends(get_current_user_id),
    use_case: RefreshAccountUseCase = Depends(get_refresh_account_use_case),
) -> RefreshAccountResponse:
    result = await use_case.execute(RefreshAccountCommand(user_id=user_id))
    return RefreshAccountResponse(
        message="Account refreshed successfully",
        account=RefreshedAccountItem(
            **_account_item(result.account).model_dump(),
            last_sync=result.account.last_sync,
            margin=float(result.margin),
            free_margin=float(result.free_margin),
            currency=result.currency,
        ),
    )


@router.post(
    "/{account_pk}/disconnect",
    response_model=DisconnectAccountResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Disconnect an MT5 account",
)
async def disconnect_account(
    account_pk: int,
    request: Request,
    user_id: int = Depends(get_current_user_id),
    use_case: DisconnectAccountUseCase = Depends(get_disconnect_account_use_case),
) -> DisconnectAccountResponse:
    await use_case.execute(
        DisconnectAccountCommand(
            user_id=user_id,
            account_pk=account_pk,
            ip_address=_client_ip(request),
        )
    )
    return DisconnectAccountResponse(message="MT5 account disconnected successfully")
