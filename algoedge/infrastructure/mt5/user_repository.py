"""
Adapter: User repository.

Implements UserRepository port. Read-only: users are owned by the
platform's auth service. The lookup runs on the request session ahead of
the use case, so it commits before returning.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from algoedge.domain.mt5.ports import UserRepository
from algoedge.infrastructure.mt5.models import UserModel


class UserRepositoryAdapter(UserRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_active_user(self, user_id: int) -> bool:
        result = await self._session.execute(
            select(UserModel.is_active).where(UserModel.id == user_id)
        )
        is_active = result.scalar_one_or_none()
        await self._session.commit()
        return bool(is_active)
