"""
Data Transfer Objects for the MT5 application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from algoedge.domain.mt5.entities import Mt5Account


@dataclass(frozen=True)
class ConnectAccountCommand:
    """Input DTO for linking a broker account.

    Attributes:
        user_id: Authenticated AlgoEdge user.
        account_id: Broker login number, as typed by the user.
        password: Broker password. Forwarded to the provider, never stored.
        server: Broker server name, e.g. "ICMarkets-Demo".
        ip_address: Client address recorded in the audit trail.
    """

    user_id: int
    account_id: str
    password: str = field(repr=False)
    server: str
    ip_address: str = ""


@dataclass(frozen=True)
class RefreshAccountCommand:
    user_id: int


@dataclass(frozen=True)
class DisconnectAccountCommand:
    """Input DTO for unlinking a broker account.

    Attributes:
        user_id: Authenticated AlgoEdge user.
        account_pk: Local primary key of the account to disconnect.
        ip_address: Client address recorded in the audit trail.
    """

    user_id: int
    account_pk: int
    ip_address: str = ""


@dataclass(frozen=True)
class AccountSummaryResult:
    """Output DTO describing a local MT5 account.

    Attributes:
        id: Local primary key.
        account_id: Broker login.
        server: Broker server name.
        status: "connected" or "disconnected".
        balance: Last known balance.
        equity: Last known equity.
        last_sync: When balance/equity were last read from the provider.
        connected_at: When the record was created.
    """

    id: int
    account_id: str
    server: str
    status: str
    balance: Decimal
    equity: Decimal
    last_sync: Optional[datetime] = None
    connected_at: Optional[datetime] = None


@dataclass(frozen=True)
class RefreshAccountResult:
    """Output DTO for a refreshed account, with the live margin figures."""

    account: AccountSummaryResult
    margin: Decimal
    free_margin: Decimal
    currency: Optional[str] = None


def to_summary(account: Mt5Account) -> AccountSummaryResult:
    """Map a stored account entity to its output DTO."""
    return AccountSummaryResult(
        id=account.id,
        account_id=account.account_id,
        server=account.server,
        status=account.status.value,
        balance=account.balance,
        equity=account.equity,
        last_sync=account.last_sync,
        connected_at=account.created_at,
    )
