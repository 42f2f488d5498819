"""
Adapter: MT5 account repository.

Implements Mt5AccountRepository port on the mt5_accounts table.
Every write commits its own transaction. Reads end theirs before
returning, so no pooled connection stays checked out while a caller
waits on MetaAPI.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from algoedge.domain.mt5.entities import AccountStatus, Mt5Account
from algoedge.domain.mt5.errors import AccountAlreadyConnectedError, AccountNotFoundError
from algoedge.domain.mt5.ports import Mt5AccountRepository
from algoedge.infrastructure.mt5.models import Mt5AccountModel

logger = logging.getLogger(__name__)


def _to_entity(row: Mt5AccountModel) -> Mt5Account:
    return Mt5Account(
        id=row.id,
        user_id=row.user_id,
        account_id=row.account_id,
        server=row.server,
        api_key=row.api_key,
        status=AccountStatus(row.status),
        balance=Decimal(str(row.balance or 0)),
        equity=Decimal(str(row.equity or 0)),
        last_sync=row.last_sync,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


class Mt5AccountRepositoryAdapter(Mt5AccountRepository):
    """SQLAlchemy implementation of the MT5 account repository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_connected_for_user(self, user_id: int) -> Optional[Mt5Account]:
        result = await self._session.execute(
            select(Mt5AccountModel)
            .where(
                Mt5AccountModel.user_id == user_id,
                Mt5AccountModel.status == AccountStatus.CONNECTED.value,
            )
            .limit(1)
        )
        row = result.scalar_one_or_none()
        account = _to_entity(row) if row is not None else None
        await self._end_read()
        return account

    async def get_for_user(self, user_id: int, account_pk: int) -> Optional[Mt5Account]:
        result = await self._session.execute(
            select(Mt5AccountModel).where(
                Mt5AccountModel.id == account_pk,
                Mt5AccountModel.user_id == user_id,
            )
        )
        row = result.scalar_one_or_none()
        account = _to_entity(row) if row is not None else None
        await self._end_read()
        return account

    async def add_connected(self, account: Mt5Account) -> Mt5Account:
        """Insert a connected account.

        A concurrent connect that won the race trips the partial unique
        index; that conflict is reported as AccountAlreadyConnectedError.
        """
        row = Mt5AccountModel(
            user_id=account.user_id,
            account_id=account.account_id,
            server=account.server,
            api_key=account.api_key,
            status=AccountStatus.CONNECTED.value,
            is_connected=True,
            balance=account.balance,
            equity=account.equity,
            last_sync=account.last_sync,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            if _is_unique_violation(exc):
                logger.info("Concurrent connect lost the race for user=%s", account.user_id)
                raise AccountAlreadyConnectedError(account.user_id) from exc
            raise
        await self._session.commit()
        await self._session.refresh(row)
        return _to_entity(row)

    async def update_balance(
        self,
        account_pk: int,
        balance: Decimal,
        equity: Decimal,
        synced_at: datetime,
    ) -> Mt5Account:
        row = await self._get_row(account_pk)
        row.balance = balance
        row.equity = equity
        row.last_sync = synced_at
        await self._session.commit()
        await self._session.refresh(row)
        return _to_entity(row)

    async def mark_disconnected(self, account_pk: int) -> Mt5Account:
        row = await self._get_row(account_pk)
        row.status = AccountStatus.DISCONNECTED.value
        row.is_connected = False
        await self._session.commit()
        await self._session.refresh(row)
        return _to_entity(row)

    async def _end_read(self) -> None:
        await self._session.commit()

    async def _get_row(self, account_pk: int) -> Mt5AccountModel:
        row = await self._session.get(Mt5AccountModel, account_pk)
        if row is None:
            raise AccountNotFoundError(str(account_pk))
        return row
