"""
Use case: Link a user's MT5 broker account through MetaAPI.

Input: ConnectAccountCommand (user_id, account_id, password, server, ip_address)
Output: AccountSummaryResult
Side effects: May create and deploy a remote MetaAPI account. Inserts one
    connected MT5 account row and one MT5_ACCOUNT_CONNECTED audit entry.
Failure cases: AccountAlreadyConnectedError, ProviderNotConfiguredError,
    ProvisioningRejectedError, DeploymentFailedError, ConnectionCancelledError.

Waiting on the provider never fails the request by itself: an account that
is still deploying, or that reports a zero balance once the attempts are
spent, is stored as connected with whatever figures were last seen.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from algoedge.application.mt5.dtos import (
    AccountSummaryResult,
    ConnectAccountCommand,
    to_summary,
)
from algoedge.domain.mt5.entities import (
    AccountInformation,
    AccountStatus,
    AuditAction,
    AuditEntry,
    BrokerCredentials,
    Mt5Account,
    ProvisioningSchedule,
    RemoteAccount,
)
from algoedge.domain.mt5.errors import (
    AccountAlreadyConnectedError,
    ConnectionCancelledError,
    DeploymentFailedError,
    ProviderError,
    ProviderNotConfiguredError,
    ProvisioningRejectedError,
)
from algoedge.domain.mt5.ports import (
    AuditLogRepository,
    Mt5AccountRepository,
    TradingAccountProvider,
)
from algoedge.shared.polling import Clock, Deadline, PollAborted, Sleep, poll_until

logger = logging.getLogger(__name__)

AbortCheck = Callable[[], Awaitable[bool]]


class ConnectAccountUseCase:
    """Orchestrates discovery, provisioning and first sync of an MT5 account.

    An existing remote account with the same login and server is reused
    (redeployed if needed) instead of creating a duplicate, so retrying a
    connect after a timeout or a client disconnect is safe.
    """

    def __init__(
        self,
        accounts: Mt5AccountRepository,
        audit_log: AuditLogRepository,
        provider: TradingAccountProvider,
        schedule: Optional[ProvisioningSchedule] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
        deadline_seconds: Optional[float] = None,
    ) -> None:
        self._accounts = accounts
        self._audit_log = audit_log
        self._provider = provider
        self._schedule = schedule or ProvisioningSchedule()
        self._sleep = sleep
        self._clock = clock
        self._deadline_seconds = deadline_seconds

    async def execute(
        self,
        command: ConnectAccountCommand,
        should_abort: Optional[AbortCheck] = None,
    ) -> AccountSummaryResult:
        """Run the connect use case.

        Args:
            command: Broker credentials and the requesting user.
            should_abort: Checked between poll attempts; True cancels the
                connect before anything is written.

        Returns:
            Summary of the stored account.

        Raises:
            AccountAlreadyConnectedError: If the user already has a
                connected account (checked before any remote call, and
                again by the store on insert).
            ProviderNotConfiguredError: If no MetaAPI token is configured.
            ProvisioningRejectedError: If MetaAPI refuses to create the account.
            DeploymentFailedError: If MetaAPI reports DEPLOY_FAILED.
            ConnectionCancelledError: If ``should_abort`` fired.
        """
        if await self._accounts.get_connected_for_user(command.user_id) is not None:
            raise AccountAlreadyConnectedError(command.user_id)

        if not self._provider.is_configured():
            raise ProviderNotConfiguredError()

        logger.info(
            "Connecting MT5 account for user=%s, login=%s, server=%s",
            command.user_id,
            command.account_id,
            command.server,
        )

        credentials = BrokerCredentials(
            login=command.account_id,
            password=command.password,
            server=command.server,
        )
        deadline = Deadline(self._deadline_seconds, self._clock)

        try:
            remote_id = await self._provision(credentials, deadline, should_abort)
            information = await self._read_balance(remote_id, deadline, should_abort)
        except PollAborted as exc:
            logger.info(
                "Connect cancelled for user=%s, login=%s", command.user_id, command.account_id
            )
            raise ConnectionCancelledError() from exc

        account = await self._accounts.add_connected(
            Mt5Account(
                user_id=command.user_id,
                account_id=command.account_id,
                server=command.server,
                api_key=remote_id,
                status=AccountStatus.CONNECTED,
                balance=information.balance,
                equity=information.equity,
                last_sync=datetime.now(timezone.utc),
            )
        )

        await self._record_audit(
            AuditEntry(
                user_id=command.user_id,
                action=AuditAction.MT5_ACCOUNT_CONNECTED,
                details={
                    "accountId": command.account_id,
                    "server": command.server,
                    "balance": float(account.balance),
                    "equity": float(account.equity),
                },
                ip_address=command.ip_address,
            )
        )

        logger.info(
            "MT5 account %s connected for user=%s (balance=%s, equity=%s)",
            account.id,
            command.user_id,
            account.balance,
            account.equity,
        )
        return to_summary(account)

    async def _provision(
        self,
        credentials: BrokerCredentials,
        deadline: Deadline,
        should_abort: Optional[AbortCheck],
    ) -> str:
        """Make sure a deployed remote account exists and return its id."""
        schedule = self._schedule
        existing = await self._find_existing(credentials)

        if existing is not None:
            logger.info(
                "Reusing MetaAPI account %s (state=%s, connection=%s)",
                existing.id,
                existing.state,
                existing.connection_status,
            )
            if not existing.is_deployed:
                await self._deploy(existing.id)
                await self._wait_for(
                    existing.id,
                    lambda remote: remote.is_ready,
                    schedule.redeploy_attempts,
                    deadline,
                    should_abort,
                )
            elif not existing.is_connected:
                await self._wait_for(
                    existing.id,
                    lambda remote: remote.is_connected,
                    schedule.wait_connected_attempts,
                    deadline,
                    should_abort,
                )
            return existing.id

        try:
            remote_id = await self._provider.create_account(credentials, schedule)
        except ProviderError as exc:
            raise ProvisioningRejectedError(exc.provider_message) from exc
        logger.info("Created MetaAPI account %s", remote_id)

        await self._deploy(remote_id)
        await self._wait_for(
            remote_id,
            lambda remote: remote.is_ready,
            schedule.new_account_attempts,
            deadline,
            should_abort,
        )
        return remote_id

    async def _find_existing(self, credentials: BrokerCredentials) -> Optional[RemoteAccount]:
        try:
            remote_accounts = await self._provider.list_accounts()
        except ProviderError as exc:
            logger.warning("Could not list MetaAPI accounts, creating a new one: %s", exc)
            return None
        for remote in remote_accounts:
            if remote.matches(credentials.login, credentials.server):
                return remote
        return None

    async def _deploy(self, remote_id: str) -> None:
        try:
            await self._provider.deploy_account(remote_id)
        except ProviderError as exc:
            # Already deploying is reported as an error too; polling decides.
            logger.warning("Deploy request for %s failed: %s", remote_id, exc)

    async def _wait_for(
        self,
        remote_id: str,
        ready: Callable[[RemoteAccount], bool],
        max_attempts: int,
        deadline: Deadline,
        should_abort: Optional[AbortCheck],
    ) -> None:
        outcome = await poll_until(
            lambda: self._provider.get_account(remote_id),
            lambda remote: ready(remote) or remote.deploy_failed,
            max_attempts=max_attempts,
            delay=self._schedule.poll_interval,
            sleep=self._sleep,
            deadline=deadline,
            should_abort=should_abort,
            label=f"deploy {remote_id}",
        )
        if outcome.result is not None and outcome.result.deploy_failed:
            raise DeploymentFailedError(remote_id)
        if not outcome.satisfied:
            logger.warning(
                "MetaAPI account %s not ready after %d attempts, continuing",
                remote_id,
                outcome.attempts,
            )

    async def _read_balance(
        self,
        remote_id: str,
        deadline: Deadline,
        should_abort: Optional[AbortCheck],
    ) -> AccountInformation:
        if should_abort is not None and await should_abort():
            raise PollAborted(f"balance {remote_id}")

        schedule = self._schedule
        remaining = deadline.remaining()
        grace = schedule.sync_grace_period if remaining is None else min(
            schedule.sync_grace_period, remaining
        )
        await self._sleep(grace)

        outcome = await poll_until(
            lambda: self._provider.get_account_information(remote_id),
            lambda information: information.has_funds,
            max_attempts=schedule.balance_attempts,
            delay=lambda attempt: schedule.balance_delay(attempt - 1),
            sleep=self._sleep,
            deadline=deadline,
            should_abort=should_abort,
            delay_first=False,
            label=f"balance {remote_id}",
        )
        if outcome.satisfied and outcome.result is not None:
            return outcome.result
        logger.warning("Balance for %s still zero, storing zeros", remote_id)
        return AccountInformation(balance=Decimal("0"), equity=Decimal("0"))

    async def _record_audit(self, entry: AuditEntry) -> None:
        try:
            await self._audit_log.record(entry)
        except Exception:
            logger.exception("Failed to write %s audit entry", entry.action.value)
