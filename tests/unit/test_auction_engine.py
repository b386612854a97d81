"""Unit tests for AuctionEngine against in-memory collaborators (see conftest)."""
from datetime import timedelta

import pytest

from src.au_auction.domain.models import BidderRating
from src.au_common.errors import (
    AppError,
    AuctionClosedError,
    AuctionNotFoundError,
    ConcurrencyTimeoutError,
)

A, B, C, D = "bidder-aaaa", "bidder-bbbb", "bidder-cccc", "bidder-dddd"


async def _error_code(coro) -> int:  # type: ignore[no-untyped-def]
    with pytest.raises(AppError) as exc_info:
        await coro
    return exc_info.value.code


class TestPriceResolution:
    async def test_first_bid_wins_at_starting_price(self, engine, repo, item) -> None:
        out = await engine.place_bid("lot-1", A, 150)
        assert out.resulting_price == 100
        assert out.is_caller_winning is True
        assert out.bid_count == 1
        [bid] = repo.bids_of("lot-1")
        assert (bid.amount, bid.limit) == (100, 150)

    async def test_challenger_below_champion_limit_loses(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        out = await engine.place_bid("lot-1", B, 120)
        assert out.resulting_price == 120
        assert out.is_caller_winning is False
        assert out.bid_count == 2
        # Only the challenger's exhausted attempt is recorded
        rows = repo.bids_of("lot-1")
        assert len(rows) == 2
        assert (rows[1].bidder_id, rows[1].amount, rows[1].limit) == (B, 120, 120)

    async def test_challenger_above_champion_takes_over_one_step_up(
        self, engine, repo, item
    ) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", B, 120)
        out = await engine.place_bid("lot-1", C, 200)
        assert out.resulting_price == 160
        assert out.is_caller_winning is True
        assert repo.items["lot-1"].current_price == 160
        assert repo.items["lot-1"].bid_count == 3

    async def test_takeover_capped_by_incoming_limit(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        out = await engine.place_bid("lot-1", B, 155)
        assert out.resulting_price == 155
        assert out.is_caller_winning is True

    async def test_equal_limit_goes_to_earlier_champion(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        out = await engine.place_bid("lot-1", B, 150)
        assert out.resulting_price == 150
        assert out.is_caller_winning is False

    async def test_self_raise_keeps_price(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        out = await engine.place_bid("lot-1", A, 300)
        assert out.resulting_price == 100
        assert out.is_caller_winning is True
        assert out.bid_count == 2
        assert (repo.bids_of("lot-1")[1].amount, repo.bids_of("lot-1")[1].limit) == (100, 300)

    async def test_raised_ceiling_defends_later_challenger(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", A, 300)
        out = await engine.place_bid("lot-1", B, 250)
        assert out.resulting_price == 250
        assert out.is_caller_winning is False

    async def test_created_at_strictly_increases_under_frozen_clock(
        self, engine, repo, item
    ) -> None:
        for bidder, limit in ((A, 150), (B, 120), (C, 200)):
            await engine.place_bid("lot-1", bidder, limit)
        stamps = [b.created_at for b in repo.bids_of("lot-1")]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 3

    async def test_price_never_below_starting_price(self, engine, repo, item) -> None:
        for bidder, limit in ((A, 100), (B, 110), (A, 500), (C, 120), (D, 130)):
            try:
                await engine.place_bid("lot-1", bidder, limit)
            except AppError:
                pass
            assert repo.items["lot-1"].current_price >= 100


class TestAdmissionChecks:
    async def test_missing_item(self, engine) -> None:
        with pytest.raises(AuctionNotFoundError) as exc_info:
            await engine.place_bid("nope", A, 150)
        assert exc_info.value.code == 3001
        assert isinstance(exc_info.value, AuctionClosedError)

    async def test_bid_after_end_is_closed_before_sweep(self, engine, repo, clock, item) -> None:
        clock.now = item.end_at
        assert await _error_code(engine.place_bid("lot-1", A, 150)) == 3002
        assert repo.items["lot-1"].status == "ACTIVE"
        assert repo.bids_of("lot-1") == []

    async def test_ended_item_is_closed(self, engine, add_item) -> None:
        add_item(id="lot-2", status="ENDED")
        assert await _error_code(engine.place_bid("lot-2", A, 150)) == 3002

    async def test_seller_cannot_bid(self, engine, item) -> None:
        assert await _error_code(engine.place_bid("lot-1", item.seller_id, 150)) == 4002

    async def test_unknown_bidder_not_eligible(self, engine, identity, item) -> None:
        identity.ratings["ghost"] = None
        assert await _error_code(engine.place_bid("lot-1", "ghost", 150)) == 4002

    async def test_unrated_bidder_needs_seller_permission(self, engine, add_item) -> None:
        add_item(id="lot-2", allows_unrated_bidders=False)
        assert await _error_code(engine.place_bid("lot-2", A, 150)) == 4002

    async def test_rating_at_threshold_is_eligible(self, engine, identity, add_item) -> None:
        add_item(id="lot-2", allows_unrated_bidders=False)
        identity.ratings[A] = BidderRating(positive=4, negative=1)
        out = await engine.place_bid("lot-2", A, 150)
        assert out.is_caller_winning is True

    async def test_rating_below_threshold_rejected(self, engine, identity, item) -> None:
        identity.ratings[A] = BidderRating(positive=3, negative=1)
        assert await _error_code(engine.place_bid("lot-1", A, 150)) == 4002

    async def test_first_bid_below_starting_price(self, engine, item) -> None:
        assert await _error_code(engine.place_bid("lot-1", A, 99)) == 4001

    async def test_next_bid_needs_price_plus_step(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        assert await _error_code(engine.place_bid("lot-1", B, 109)) == 4001
        out = await engine.place_bid("lot-1", B, 110)
        assert out.resulting_price == 110

    @pytest.mark.parametrize("limit", [0, -5, True])
    async def test_invalid_amount_checked_before_any_session(
        self, engine, session_factory, item, limit
    ) -> None:
        assert await _error_code(engine.place_bid("lot-1", A, limit)) == 4005
        assert session_factory.sessions == []

    async def test_closed_reported_before_eligibility(self, engine, clock, item) -> None:
        clock.now = item.end_at + timedelta(seconds=1)
        assert await _error_code(engine.place_bid("lot-1", item.seller_id, 1)) == 3002

    async def test_failed_bid_rolls_back_and_writes_nothing(
        self, engine, repo, session_factory, notifier, item
    ) -> None:
        await engine.place_bid("lot-1", A, 150)
        sent_before = len(notifier.sent)
        assert await _error_code(engine.place_bid("lot-1", B, 105)) == 4001
        assert session_factory.rollbacks == 1
        assert len(repo.bids_of("lot-1")) == 1
        assert repo.items["lot-1"].bid_count == 1
        assert len(notifier.sent) == sent_before


class TestAutoExtend:
    async def test_bid_inside_window_extends(self, engine, repo, clock, add_item) -> None:
        add_item(id="lot-2", auto_extend_enabled=True, end_at=clock.now + timedelta(minutes=3))
        out = await engine.place_bid("lot-2", A, 150)
        assert out.extended is True
        assert out.end_at == clock.now + timedelta(minutes=10)
        assert repo.items["lot-2"].end_at == clock.now + timedelta(minutes=10)

    async def test_bid_outside_window_keeps_deadline(self, engine, clock, add_item) -> None:
        end = clock.now + timedelta(minutes=30)
        add_item(id="lot-2", auto_extend_enabled=True, end_at=end)
        out = await engine.place_bid("lot-2", A, 150)
        assert out.extended is False
        assert out.end_at == end

    async def test_disabled_never_extends(self, engine, clock, add_item) -> None:
        end = clock.now + timedelta(minutes=1)
        add_item(id="lot-2", end_at=end)
        out = await engine.place_bid("lot-2", A, 150)
        assert out.end_at == end

    async def test_item_override_threshold(self, engine, clock, add_item) -> None:
        end = clock.now + timedelta(minutes=3)
        add_item(
            id="lot-2",
            auto_extend_enabled=True,
            auto_extend_threshold_minutes=2,
            auto_extend_duration_minutes=10,
            end_at=end,
        )
        out = await engine.place_bid("lot-2", A, 150)
        assert out.end_at == end

    async def test_short_extension_can_pull_deadline_in(self, engine, repo, clock, add_item) -> None:
        add_item(
            id="lot-2",
            auto_extend_enabled=True,
            auto_extend_threshold_minutes=10,
            auto_extend_duration_minutes=5,
            end_at=clock.now + timedelta(minutes=8),
        )
        out = await engine.place_bid("lot-2", A, 150)
        assert out.extended is True
        assert repo.items["lot-2"].end_at == clock.now + timedelta(minutes=5)

    async def test_app_settings_override_duration(self, engine, repo, clock, add_item) -> None:
        repo.app_settings["AUTO_EXTEND_DURATION_MINUTES"] = "20"
        add_item(id="lot-2", auto_extend_enabled=True, end_at=clock.now + timedelta(minutes=3))
        out = await engine.place_bid("lot-2", A, 150)
        assert out.end_at == clock.now + timedelta(minutes=20)

    async def test_malformed_app_setting_falls_back(self, engine, repo, clock, add_item) -> None:
        repo.app_settings["AUTO_EXTEND_DURATION_MINUTES"] = "ten"
        add_item(id="lot-2", auto_extend_enabled=True, end_at=clock.now + timedelta(minutes=3))
        out = await engine.place_bid("lot-2", A, 150)
        assert out.end_at == clock.now + timedelta(minutes=10)

    async def test_rejected_bid_does_not_extend(self, engine, repo, clock, add_item) -> None:
        end = clock.now + timedelta(minutes=3)
        add_item(id="lot-2", auto_extend_enabled=True, end_at=end)
        assert await _error_code(engine.place_bid("lot-2", A, 50)) == 4001
        assert repo.items["lot-2"].end_at == end


class TestRejectBidder:
    async def test_rejecting_sole_bidder_resets_item(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", A, 300)
        out = await engine.reject_bidder("lot-1", A, item.seller_id)
        assert out.rejected_bids == 2
        assert (out.current_price, out.bid_count) == (100, 0)
        assert all(b.is_rejected for b in repo.bids_of("lot-1"))

    async def test_remaining_defense_prices_at_runner_up_limit(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", B, 120)
        await engine.place_bid("lot-1", C, 200)
        out = await engine.reject_bidder("lot-1", C, item.seller_id)
        assert (out.current_price, out.bid_count) == (120, 2)

    async def test_remaining_overtake_prices_one_step_above(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", D, 120)
        await engine.place_bid("lot-1", B, 200)
        out = await engine.reject_bidder("lot-1", D, item.seller_id)
        assert (out.current_price, out.bid_count) == (160, 2)

    async def test_single_remaining_bidder_gets_starting_price(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", B, 200)
        out = await engine.reject_bidder("lot-1", B, item.seller_id)
        assert (out.current_price, out.bid_count) == (100, 1)

    async def test_same_bidder_rows_fill_winner_and_runner_up(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", A, 300)
        await engine.place_bid("lot-1", B, 200)
        out = await engine.reject_bidder("lot-1", B, item.seller_id)
        assert (out.current_price, out.bid_count) == (160, 2)

    async def test_rejected_bidder_is_banned(self, engine, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.reject_bidder("lot-1", A, item.seller_id)
        assert await _error_code(engine.place_bid("lot-1", A, 500)) == 4003

    async def test_moderator_may_reject(self, engine, identity, item) -> None:
        identity.moderators.add("mod-1")
        await engine.place_bid("lot-1", A, 150)
        out = await engine.reject_bidder("lot-1", A, "mod-1")
        assert out.rejected_bids == 1

    async def test_other_user_not_authorized(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        assert await _error_code(engine.reject_bidder("lot-1", A, B)) == 4004
        assert not repo.bids_of("lot-1")[0].is_rejected

    async def test_ended_item_cannot_reject(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        repo.items["lot-1"].status = "ENDED"
        assert await _error_code(engine.reject_bidder("lot-1", A, item.seller_id)) == 3002

    async def test_missing_item(self, engine) -> None:
        assert await _error_code(engine.reject_bidder("nope", A, "anyone")) == 3001

    async def test_bidder_without_bids(self, engine, item) -> None:
        assert await _error_code(engine.reject_bidder("lot-1", A, item.seller_id)) == 4006

    async def test_never_creates_bid_rows(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", B, 200)
        await engine.reject_bidder("lot-1", A, item.seller_id)
        assert len(repo.bids_of("lot-1")) == 2

    async def test_struck_bidder_notified(self, engine, notifier, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        notifier.sent.clear()
        await engine.reject_bidder("lot-1", A, item.seller_id)
        assert notifier.events_for(A) == ["BIDS_REJECTED"]

    async def test_reject_bid_by_id(self, engine, repo, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        await engine.place_bid("lot-1", B, 200)
        bid_id = repo.bids_of("lot-1")[1].id
        out = await engine.reject_bid(bid_id, item.seller_id)
        assert out.bidder_id == B
        assert out.current_price == 100

    async def test_reject_unknown_bid_id(self, engine, item) -> None:
        assert await _error_code(engine.reject_bid(999, item.seller_id)) == 4006


class TestNotifications:
    async def test_first_bid(self, engine, notifier, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        assert notifier.events_for(A) == ["BID_WINNING"]
        assert notifier.events_for(item.seller_id) == ["NEW_BID"]

    async def test_defended(self, engine, notifier, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        notifier.sent.clear()
        await engine.place_bid("lot-1", B, 120)
        assert notifier.events_for(B) == ["BID_OUTBID"]
        assert notifier.events_for(A) == ["BID_DEFENDED"]
        assert notifier.sent[-1].payload["current_price"] == 120

    async def test_takeover(self, engine, notifier, item) -> None:
        await engine.place_bid("lot-1", A, 150)
        notifier.sent.clear()
        await engine.place_bid("lot-1", B, 200)
        assert notifier.events_for(B) == ["BID_WINNING"]
        assert notifier.events_for(A) == ["BID_OUTBID"]

    async def test_sent_after_lock_released(self, engine, item) -> None:
        lock_states: list[bool] = []

        class LockProbe:
            def notify_many(self, notifications) -> None:  # type: ignore[no-untyped-def]
                lock_states.append(engine._item_locks["lot-1"].locked())

        engine._notifier = LockProbe()
        await engine.place_bid("lot-1", A, 150)
        assert lock_states == [False]


class TestItemLock:
    async def test_lock_wait_timeout_is_retryable(self, engine, repo, item) -> None:
        engine._lock_timeout = 0.05
        lock = engine._item_locks["lot-1"]
        await lock.acquire()
        try:
            with pytest.raises(ConcurrencyTimeoutError) as exc_info:
                await engine.place_bid("lot-1", A, 150)
        finally:
            lock.release()
        assert exc_info.value.retryable is True
        assert exc_info.value.code == 9003
        assert repo.bids_of("lot-1") == []
        # Timed-out request is never applied later
        out = await engine.place_bid("lot-1", B, 150)
        assert out.bid_count == 1

    async def test_other_items_do_not_wait(self, engine, add_item, item) -> None:
        add_item(id="lot-2")
        engine._lock_timeout = 0.05
        lock = engine._item_locks["lot-1"]
        await lock.acquire()
        try:
            out = await engine.place_bid("lot-2", A, 150)
        finally:
            lock.release()
        assert out.bid_count == 1

    async def test_lock_released_after_failure(self, engine, item) -> None:
        await _error_code(engine.place_bid("lot-1", A, 10))
        assert not engine._item_locks["lot-1"].locked()
