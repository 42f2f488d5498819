"""
Use case: Re-read balance and equity of the connected account.

Input: RefreshAccountCommand (user_id)
Output: RefreshAccountResult
Side effects: Overwrites the cached balance, equity and last_sync.
Failure cases: AccountNotFoundError, AccountNotProvisionedError,
    ProviderNotConfiguredError, AccountSyncError.
"""

import logging
from datetime import datetime, timezone

from algoedge.application.mt5.dtos import (
    RefreshAccountCommand,
    RefreshAccountResult,
    to_summary,
)
from algoedge.domain.mt5.errors import (
    AccountNotFoundError,
    AccountNotProvisionedError,
    AccountSyncError,
    ProviderError,
    ProviderNotConfiguredError,
)
from algoedge.domain.mt5.ports import Mt5AccountRepository, TradingAccountProvider

logger = logging.getLogger(__name__)


class RefreshAccountUseCase:
    """Pulls live account information from MetaAPI into the local record."""

    def __init__(
        self, accounts: Mt5AccountRepository, provider: TradingAccountProvider
    ) -> None:
        self._accounts = accounts
        self._provider = provider

    async def execute(self, command: RefreshAccountCommand) -> RefreshAccountResult:
        """Run the refresh use case.

        Raises:
            AccountNotFoundError: If the user has no connected account.
            AccountNotProvisionedError: If the account has no MetaAPI id.
            ProviderNotConfiguredError: If no MetaAPI token is configured.
            AccountSyncError: If MetaAPI did not return account information.
        """
        account = await self._accounts.get_connected_for_user(command.user_id)
        if account is None:
            raise AccountNotFoundError()
        if not account.api_key:
            raise AccountNotProvisionedError(account.account_id)
        if not self._provider.is_configured():
            raise ProviderNotConfiguredError()

        try:
            information = await self._provider.get_account_information(account.api_key)
        except ProviderError as exc:
            logger.warning("Refresh of %s failed: %s", account.api_key, exc)
            raise AccountSyncError(account.api_key) from exc

        updated = await self._accounts.update_balance(
            account.id,
            information.balance,
            information.equity,
            datetime.now(timezone.utc),
        )
        logger.info(
            "Refreshed MT5 account %s (balance=%s, equity=%s)",
            updated.id,
            updated.balance,
            updated.equity,
        )
        return RefreshAccountResult(
            account=to_summary(updated),
            margin=information.margin,
            free_margin=information.free_margin,
            currency=information.currency,
        )
