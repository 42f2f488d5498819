"""
Pydantic schemas for MT5 account API request/response validation.

The public API speaks camelCase (``accountId``, ``lastSync``); fields are
snake_case in Python and aliased on the wire.
No business logic belongs here.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConnectAccountRequest(CamelModel):
    """Request schema for linking an MT5 account.

    Attributes:
        account_id: Broker login number (sent as ``accountId``).
        password: Broker password. Forwarded to MetaAPI, never stored.
        server: Broker server name, e.g. "ICMarkets-Demo".
    """

    account_id: str = Field(..., min_length=1, max_length=50, description="MT5 login")
    password: str = Field(..., min_length=1, max_length=255, description="MT5 password")
    server: str = Field(..., min_length=1, max_length=100, description="MT5 server name")


class AccountItem(CamelModel):
    """An MT5 account as returned after connecting."""

    id: int
    account_id: str
    server: str
    status: str
    balance: float
    equity: float


class AccountDetailsItem(AccountItem):
    connected_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None


class RefreshedAccountItem(AccountItem):
    """An MT5 account with live figures read during a refresh."""

    last_sync: Optional[datetime] = None
    margin: float = 0.0
    free_margin: float = 0.0
    currency: Optional[str] = None


class ConnectAccountResponse(BaseModel):
    message: str
    account: AccountItem


class GetAccountResponse(BaseModel):
    """``account`` is null when the user has no connected account."""

    account: Optional[AccountDetailsItem] = None


class RefreshAccountResponse(BaseModel):
    message: str
    account: RefreshedAccountItem


class DisconnectAccountResponse(BaseModel):
    message: str
