"""SettlementSweeper — closes every expired ACTIVE item, one item at a time.

Each item is settled by AuctionEngine.settle_item under the same per-item
lock as bidding, so a sweep and a last-second bid never interleave. A
failure on one item is logged and the sweep moves on.
"""
import logging
from dataclasses import asdict, dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.au_auction.domain.repository import AuctionRepositoryProtocol
from src.au_auction.engine.engine import AuctionEngine
from src.au_common.datetime_utils import Clock, utc_now
from src.au_common.enums import SettleResult
from src.au_common.errors import ConcurrencyTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    scanned: int = 0
    settled: int = 0
    unsold: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class SettlementSweeper:
    def __init__(
        self,
        engine: AuctionEngine,
        repo: AuctionRepositoryProtocol,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        batch_size: int | None = None,
    ) -> None:
        self._engine = engine
        self._repo = repo
        self._session_factory = session_factory
        self._clock = clock
        self._batch_size = batch_size or settings.SETTLEMENT_SWEEP_BATCH_SIZE

    async def run_once(self) -> SweepReport:
        report = SweepReport()
        async with self._session_factory() as db:
            item_ids = await self._repo.list_expired_item_ids(
                db, self._clock(), self._batch_size
            )
        report.scanned = len(item_ids)

        for item_id in item_ids:
            try:
                result = await self._engine.settle_item(item_id)
            except ConcurrencyTimeoutError:
                # Still ACTIVE; the next sweep picks it up again
                logger.warning("Settlement deferred, item busy: %s", item_id)
                report.skipped += 1
                continue
            except Exception:
                logger.exception("Settlement failed for item %s", item_id)
                report.failed += 1
                continue

            if result == SettleResult.SETTLED:
                report.settled += 1
            elif result == SettleResult.UNSOLD:
                report.unsold += 1
            else:
                report.skipped += 1

        if report.scanned:
            logger.info("Settlement sweep finished: %s", report.to_dict())
        return report
