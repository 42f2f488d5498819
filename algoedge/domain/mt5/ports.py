"""
Port interfaces (ABCs) for the MT5 bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from algoedge.domain.mt5.entities import (
    AccountInformation,
    AuditEntry,
    BrokerCredentials,
    Mt5Account,
    ProvisioningSchedule,
    RemoteAccount,
)


class Mt5AccountRepository(ABC):
    """Port for the locally persisted MT5 account records.

    Reads must not leave a transaction open: the connect use case calls
    MetaAPI for up to a minute between its first read and its insert.
    """

    @abstractmethod
    async def get_connected_for_user(self, user_id: int) -> Optional[Mt5Account]:
        """Return the user's connected account, or None."""
        raise NotImplementedError

    @abstractmethod
    async def get_for_user(self, user_id: int, account_pk: int) -> Optional[Mt5Account]:
        """Return the account with the given primary key if it belongs to the user."""
        raise NotImplementedError

    @abstractmethod
    async def add_connected(self, account: Mt5Account) -> Mt5Account:
        """Insert a connected account and flush it.

        Raises:
            AccountAlreadyConnectedError: If the store already holds a
                connected account for the same user.

        Returns:
            The stored account with ``id`` and timestamps populated.
        """
        raise NotImplementedError

    @abstractmethod
    async def update_balance(
        self,
        account_pk: int,
        balance: Decimal,
        equity: Decimal,
        synced_at: datetime,
    ) -> Mt5Account:
        """Overwrite the cached balance/equity and last sync time."""
        raise NotImplementedError

    @abstractmethod
    async def mark_disconnected(self, account_pk: int) -> Mt5Account:
        """Flip the account to disconnected."""
        raise NotImplementedError


class AuditLogRepository(ABC):
    """Port for the append-only audit trail."""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        """Append an audit entry."""
        raise NotImplementedError


class UserRepository(ABC):
    """Port for read-only lookups of platform users."""

    @abstractmethod
    async def is_active_user(self, user_id: int) -> bool:
        """Return True if the user exists and is active."""
        raise NotImplementedError


class TradingAccountProvider(ABC):
    """Port for the third-party MT5 connectivity provider (MetaAPI).

    Every remote call raises ProviderError on transport failures and
    non-2xx responses.
    """

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True if a provisioning credential is available."""
        raise NotImplementedError

    @abstractmethod
    async def list_accounts(self) -> list[RemoteAccount]:
        raise NotImplementedError

    @abstractmethod
    async def create_account(
        self, credentials: BrokerCredentials, schedule: ProvisioningSchedule
    ) -> str:
        """Create a remote account proxy.

        Returns:
            The remote account id.
        """
        raise NotImplementedError

    @abstractmethod
    async def deploy_account(self, remote_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_account(self, remote_id: str) -> RemoteAccount:
        """Return the current deployment/connection state of a remote account."""
        raise NotImplementedError

    @abstractmethod
    async def get_account_information(self, remote_id: str) -> AccountInformation:
        """Return balance, equity and margin figures from the client API."""
        raise NotImplementedError

    @abstractmethod
    async def undeploy_account(self, remote_id: str) -> None:
        raise NotImplementedError
