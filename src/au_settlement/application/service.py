# src/au_settlement/application/service.py
"""Sweeper singleton and the APScheduler job that runs it on a fixed interval."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config.settings import settings
from src.au_auction.application.service import get_auction_engine
from src.au_auction.infrastructure.persistence import AuctionRepository
from src.au_common.database import async_session_factory
from src.au_settlement.application.sweeper import SettlementSweeper

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "settlement_sweep"

_sweeper: SettlementSweeper | None = None
_scheduler: AsyncIOScheduler | None = None


def get_settlement_sweeper() -> SettlementSweeper:
    global _sweeper  # noqa: PLW0603
    if _sweeper is None:
        _sweeper = SettlementSweeper(
            engine=get_auction_engine(),
            repo=AuctionRepository(),
            session_factory=async_session_factory,
        )
    return _sweeper


async def settlement_sweep_job() -> None:
    try:
        await get_settlement_sweeper().run_once()
    except Exception:
        # Scan query failed; next tick retries
        logger.exception("Settlement sweep job failed")


def init_scheduler(interval_seconds: int | None = None) -> AsyncIOScheduler:
    """Start the APScheduler with the recurring settlement sweep."""
    global _scheduler  # noqa: PLW0603
    seconds = interval_seconds or settings.SETTLEMENT_SWEEP_INTERVAL_SECONDS
    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        settlement_sweep_job,
        trigger=IntervalTrigger(seconds=seconds),
        id=SWEEP_JOB_ID,
        name="Settlement Sweeper",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    logger.info("APScheduler started: settlement sweep every %ds", seconds)
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler  # noqa: PLW0603
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("APScheduler shut down")
