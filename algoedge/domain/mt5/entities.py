"""
Domain entities for the MT5 bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class AccountStatus(Enum):
    """Local connection status of an MT5 account record."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class AuditAction(Enum):
    """Audit trail actions emitted by the MT5 context."""

    MT5_ACCOUNT_CONNECTED = "MT5_ACCOUNT_CONNECTED"
    MT5_ACCOUNT_DISCONNECTED = "MT5_ACCOUNT_DISCONNECTED"


# MetaAPI account states / connection statuses the orchestrator reacts to.
DEPLOYED = "DEPLOYED"
DEPLOY_FAILED = "DEPLOY_FAILED"
CONNECTED = "CONNECTED"


@dataclass
class Mt5Account:
    """A user's MT5 broker account as recorded by AlgoEdge.

    ``api_key`` is the MetaAPI account id, the only link between this
    record and the remote account. It is a reference, not a secret.
    ``balance`` and ``equity`` are the last values read from the
    provider and may be stale (or zero if sync never completed).
    """

    user_id: int
    account_id: str
    server: str
    api_key: Optional[str]
    status: AccountStatus = AccountStatus.CONNECTED
    balance: Decimal = Decimal("0")
    equity: Decimal = Decimal("0")
    last_sync: Optional[datetime] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_connected(self) -> bool:
        return self.status is AccountStatus.CONNECTED


@dataclass(frozen=True)
class RemoteAccount:
    """A trading-account proxy living at the provider (never persisted)."""

    id: str
    login: str
    server: str
    state: str
    connection_status: Optional[str] = None

    @property
    def is_deployed(self) -> bool:
        return self.state == DEPLOYED

    @property
    def is_connected(self) -> bool:
        return self.connection_status == CONNECTED

    @property
    def is_ready(self) -> bool:
        """Deployed and holding a live broker session."""
        return self.is_deployed and self.is_connected

    @property
    def deploy_failed(self) -> bool:
        return self.state == DEPLOY_FAILED

    def matches(self, login: str, server: str) -> bool:
        """Return True if this remote account mirrors the given credentials.

        The login is compared as a string: the provider types it as a
        number in some responses and as a string in others.
        """
        return str(self.login) == str(login) and self.server == server


@dataclass(frozen=True)
class AccountInformation:
    """Balance snapshot read from the provider's client API."""

    balance: Decimal
    equity: Decimal
    margin: Decimal = Decimal("0")
    free_margin: Decimal = Decimal("0")
    currency: Optional[str] = None

    @property
    def has_funds(self) -> bool:
        """Zero on both sides means the provider has not synced yet."""
        return self.balance > 0 or self.equity > 0


@dataclass(frozen=True)
class BrokerCredentials:
    """Credentials forwarded to the provider. The password is never stored."""

    login: str
    password: str = field(repr=False)
    server: str


@dataclass(frozen=True)
class AuditEntry:
    """An append-only audit trail record."""

    user_id: int
    action: AuditAction
    details: dict[str, Any]
    ip_address: str = ""


@dataclass(frozen=True)
class ProvisioningSchedule:
    """Bounds for every wait on the provider during a connect.

    Attributes:
        poll_interval: Fixed delay between deploy/connect status polls.
        redeploy_attempts: Polls after redeploying an existing account.
        wait_connected_attempts: Polls for an already deployed account
            that has no broker session yet.
        new_account_attempts: Polls after creating and deploying a new account.
        sync_grace_period: Pause before the first balance read.
        balance_attempts: Maximum balance reads.
        balance_base_delay: Delay before balance read ``0``; each later
            read waits ``balance_delay_step`` seconds longer.
    """

    poll_interval: float = 2.0
    redeploy_attempts: int = 20
    wait_connected_attempts: int = 10
    new_account_attempts: int = 30
    sync_grace_period: float = 3.0
    balance_attempts: int = 8
    balance_base_delay: float = 2.0
    balance_delay_step: float = 1.0
    name_prefix: str = "AlgoEdge-"
    platform: str = "mt5"
    account_type: str = "cloud"
    magic: int = 123456

    def balance_delay(self, attempt: int) -> float:
        return self.balance_base_delay + self.balance_delay_step * attempt

    def display_name(self, login: str) -> str:
        return f"{self.name_prefix}{login}"
