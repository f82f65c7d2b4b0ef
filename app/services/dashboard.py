import asyncio
import logging
from datetime import datetime
from typing import Callable

from starlette.concurrency import run_in_threadpool

from app.db.dynamo import LedgerStore
from app.models.ledger import DashboardSummary, LedgerKind
from app.utils.analyzer import LedgerAnalyzer

logger = logging.getLogger(__name__)

INCOME_WINDOW_DAYS = 60
EXPENSE_WINDOW_DAYS = 30
RECENT_LIMIT = 5


class DashboardAggregator:
    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = datetime.utcnow):
        self._store = store
        self._clock = clock
        self._analyzer = LedgerAnalyzer(recent_limit=RECENT_LIMIT)

    async def get_summary(self, user_id: str) -> DashboardSummary:
        """
        Run the independent ledger queries concurrently and combine them.
        Any failing query fails the whole summary.
        """
        now = self._clock()
        income_floor = self._analyzer.window_floor(now, INCOME_WINDOW_DAYS)
        expense_floor = self._analyzer.window_floor(now, EXPENSE_WINDOW_DAYS)

        (
            total_income,
            total_expenses,
            income_window,
            expense_window,
            recent_income,
            recent_expenses,
        ) = await asyncio.gather(
            run_in_threadpool(self._store.sum_where, user_id, LedgerKind.INCOME),
            run_in_threadpool(self._store.sum_where, user_id, LedgerKind.EXPENSE),
            run_in_threadpool(self._store.list_since, user_id, LedgerKind.INCOME, income_floor),
            run_in_threadpool(self._store.list_since, user_id, LedgerKind.EXPENSE, expense_floor),
            run_in_threadpool(self._store.recent, user_id, LedgerKind.INCOME, RECENT_LIMIT),
            run_in_threadpool(self._store.recent, user_id, LedgerKind.EXPENSE, RECENT_LIMIT),
        )
        logger.info(f"Dashboard for user {user_id}: income={total_income} expenses={total_expenses}")

        return self._analyzer.summarize(
            total_income,
            total_expenses,
            income_window,
            expense_window,
            recent_income,
            recent_expenses,
        )
