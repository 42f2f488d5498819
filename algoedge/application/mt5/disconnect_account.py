"""
Use case: Mark one of the user's MT5 accounts as disconnected.

Input: DisconnectAccountCommand (user_id, account_pk, ip_address)
Output: AccountSummaryResult
Side effects: Flips the account status and appends an
    MT5_ACCOUNT_DISCONNECTED audit entry. The MetaAPI account is left
    deployed, so a later connect with the same credentials reuses it.
Failure cases: AccountNotFoundError.
"""

import logging

from algoedge.application.mt5.dtos import (
    AccountSummaryResult,
    DisconnectAccountCommand,
    to_summary,
)
from algoedge.domain.mt5.entities import AuditAction, AuditEntry
from algoedge.domain.mt5.errors import AccountNotFoundError
from algoedge.domain.mt5.ports import AuditLogRepository, Mt5AccountRepository

logger = logging.getLogger(__name__)


class DisconnectAccountUseCase:
    def __init__(
        self, accounts: Mt5AccountRepository, audit_log: AuditLogRepository
    ) -> None:
        self._accounts = accounts
        self._audit_log = audit_log

    async def execute(self, command: DisconnectAccountCommand) -> AccountSummaryResult:
        """Disconnect the account if it belongs to the user.

        Raises:
            AccountNotFoundError: For unknown ids and other users' accounts alike.
        """
        account = await self._accounts.get_for_user(command.user_id, command.account_pk)
        if account is None:
            raise AccountNotFoundError(str(command.account_pk))

        updated = await self._accounts.mark_disconnected(account.id)

        try:
            await self._audit_log.record(
                AuditEntry(
                    user_id=command.user_id,
                    action=AuditAction.MT5_ACCOUNT_DISCONNECTED,
                    details={"accountId": account.account_id, "server": account.server},
                    ip_address=command.ip_address,
                )
            )
        except Exception:
            logger.exception("Failed to write MT5_ACCOUNT_DISCONNECTED audit entry")

        logger.info("MT5 account %s disconnected for user=%s", account.id, command.user_id)
        return to_summary(updated)
