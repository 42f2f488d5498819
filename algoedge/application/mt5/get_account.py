"""
Use case: Return the user's connected MT5 account.

Input: user id
Output: AccountSummaryResult or None
Side effects: None. Stored values only, no provider call.
"""

import logging
from typing import Optional

from algoedge.application.mt5.dtos import AccountSummaryResult, to_summary
from algoedge.domain.mt5.ports import Mt5AccountRepository

logger = logging.getLogger(__name__)


class GetConnectedAccountUseCase:
    """Looks up the single connected account of a user."""

    def __init__(self, accounts: Mt5AccountRepository) -> None:
        self._accounts = accounts

    async def execute(self, user_id: int) -> Optional[AccountSummaryResult]:
        account = await self._accounts.get_connected_for_user(user_id)
        if account is None:
            logger.debug("No connected MT5 account for user=%s", user_id)
            return None
        return to_summary(account)
