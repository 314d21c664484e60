"""Tests for the depreciation ledger service."""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from assetbook.models import AssetStatus, DepreciationEntry
from assetbook.services.depreciation_service import (
    DepreciationError,
    DepreciationFailure,
    DepreciationService,
    OutcomeStatus,
)


async def count_entries(db, asset_id) -> int:
    result = await db.execute(
        select(func.count(DepreciationEntry.id)).where(DepreciationEntry.asset_id == asset_id)
    )
    return result.scalar()


@pytest.mark.asyncio
class TestSinglePeriod:
    """Creating one period at a time."""

    async def test_first_period_figures(self, db, make_asset):
        """GIVEN: 1,200,000 over 12 months bought 2024-01-15
        WHEN: Generating the first period
        THEN: It is dated 2024-02-15 and takes 100,000"""
        asset = await make_asset()
        service = DepreciationService(db)

        outcome = await service.create_next_entry(asset)

        assert outcome.status == OutcomeStatus.INSERTED
        entry = outcome.entry
        assert entry.period_sequence == 1
        assert entry.period_date == date(2024, 2, 15)
        assert entry.period_amount == Decimal("100000.00")
        assert entry.cumulative_depreciation == Decimal("100000.00")
        assert entry.book_value_after == Decimal("1100000.00")

    async def test_twelfth_period_closes_ledger(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)

        result = await service.generate_multiple(asset, 12)
        assert result.processed == 12

        latest = await service.get_latest_entry(asset.id)
        assert latest.period_sequence == 12
        assert latest.period_date == date(2025, 1, 15)
        assert latest.cumulative_depreciation == Decimal("1200000.00")
        assert latest.book_value_after == Decimal("0.00")

        extra = await service.generate_single(asset)
        assert extra.processed == 0
        assert extra.stopped_reason == DepreciationFailure.USEFUL_LIFE_EXHAUSTED
        assert await count_entries(db, asset.id) == 12

    async def test_manual_generation_ignores_due_date(self, db, make_asset):
        """Purchased today: nothing is due but a manual period is still allowed."""
        asset = await make_asset(purchase_date=date(2024, 6, 1))
        service = DepreciationService(db)

        assert await service.can_generate_auto(asset, date(2024, 6, 1)) is False
        assert await service.can_generate_manual(asset) is True

        result = await service.generate_single(asset)
        assert result.processed == 1

    async def test_disposed_asset_rejected(self, db, make_asset):
        asset = await make_asset(status=AssetStatus.DISPOSED)
        service = DepreciationService(db)

        outcome = await service.create_next_entry(asset)

        assert outcome.status == OutcomeStatus.REJECTED
        assert outcome.reason == DepreciationFailure.ASSET_NOT_ELIGIBLE
        assert await count_entries(db, asset.id) == 0

    async def test_lost_asset_rejected_even_with_pending_periods(self, db, make_asset):
        asset = await make_asset(status=AssetStatus.LOST)
        service = DepreciationService(db)

        result = await service.generate_pending(asset, date(2024, 6, 10))

        assert result.processed == 0
        assert result.stopped_reason == DepreciationFailure.ASSET_NOT_ELIGIBLE
        assert await count_entries(db, asset.id) == 0

    async def test_in_repair_asset_still_depreciates(self, db, make_asset):
        asset = await make_asset(status=AssetStatus.IN_REPAIR)

        result = await DepreciationService(db).generate_single(asset)

        assert result.processed == 1

    async def test_zero_value_is_fully_depreciated(self, db, make_asset):
        asset = await make_asset(value="0")
        service = DepreciationService(db)

        result = await service.generate_single(asset)

        assert result.processed == 0
        assert result.stopped_reason == DepreciationFailure.FULLY_DEPRECIATED

    async def test_invalid_useful_life_raises(self, db, make_asset):
        asset = await make_asset(useful_life=0)

        with pytest.raises(DepreciationError) as exc_info:
            await DepreciationService(db).generate_single(asset)

        assert exc_info.value.reason == DepreciationFailure.INVALID_CONFIGURATION

    async def test_value_lowered_below_cumulative_stops_ledger(self, db, make_asset):
        """GIVEN: 1,200 over 12 months with six periods recorded (cumulative 600)
        WHEN: The value is edited down to 500 and another period is requested
        THEN: Nothing is written and the asset reports FULLY_DEPRECIATED"""
        asset = await make_asset(value="1200.00")
        service = DepreciationService(db)
        await service.generate_multiple(asset, 6)

        asset.value = Decimal("500.00")
        await db.commit()

        single = await service.generate_single(asset)
        until_zero = await service.generate_until_zero(asset)

        assert single.processed == 0
        assert single.stopped_reason == DepreciationFailure.FULLY_DEPRECIATED
        assert until_zero.processed == 0
        assert await count_entries(db, asset.id) == 6

        history = await service.get_history(asset.id)
        assert all(e.period_amount >= 0 for e in history)
        cumulative = [e.cumulative_depreciation for e in history]
        assert cumulative == sorted(cumulative)

    async def test_value_lowered_partway_takes_only_remaining(self, db, make_asset):
        asset = await make_asset(value="1200.00")
        service = DepreciationService(db)
        await service.generate_multiple(asset, 6)

        asset.value = Decimal("650.00")
        await db.commit()

        outcome = await service.create_next_entry(asset)

        assert outcome.entry.period_amount == Decimal("50.00")
        assert outcome.entry.cumulative_depreciation == Decimal("650.00")
        assert outcome.entry.book_value_after == Decimal("0.00")

    async def test_duplicate_sequence_reported_as_already_exists(self, db, make_asset):
        """GIVEN: Period 1 already recorded
        WHEN: Another writer tries to insert period 1 again
        THEN: The insert is rolled back and reported as ALREADY_EXISTS"""
        asset = await make_asset()
        service = DepreciationService(db)
        await service.generate_single(asset)

        duplicate = DepreciationEntry(
            asset_id=asset.id,
            period_sequence=1,
            period_date=date(2024, 2, 15),
            period_amount=Decimal("100000.00"),
            cumulative_depreciation=Decimal("100000.00"),
            book_value_after=Decimal("1100000.00"),
        )
        outcome = await service._insert_entry(asset, duplicate)

        assert outcome.status == OutcomeStatus.ALREADY_EXISTS
        assert outcome.reason == DepreciationFailure.DUPLICATE_PERIOD
        assert await count_entries(db, asset.id) == 1

        # Ledger keeps working after the rollback
        result = await service.generate_single(asset)
        assert result.processed == 1
        assert await service.get_last_sequence(asset.id) == 2


@pytest.mark.asyncio
class TestBulkOperations:
    """Catch-up, N periods, until zero and until value."""

    async def test_pending_catch_up(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)

        result = await service.generate_pending(asset, date(2024, 6, 10))

        assert result.processed == 5
        assert result.requested == 5
        assert result.stopped_reason is None
        assert await service.get_pending_periods(asset, date(2024, 6, 10)) == 0

    async def test_pending_is_idempotent(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)

        await service.generate_pending(asset, date(2024, 6, 10))
        again = await service.generate_pending(asset, date(2024, 6, 10))

        assert again.processed == 0
        assert await count_entries(db, asset.id) == 5

    async def test_pending_capped_at_useful_life(self, db, make_asset):
        asset = await make_asset(useful_life=6)

        result = await DepreciationService(db).generate_pending(asset, date(2026, 1, 1))

        assert result.processed == 6

    async def test_multiple_stops_at_end_of_life(self, db, make_asset):
        asset = await make_asset()

        result = await DepreciationService(db).generate_multiple(asset, 15)

        assert result.processed == 12
        assert result.requested == 15
        assert result.stopped_reason == DepreciationFailure.USEFUL_LIFE_EXHAUSTED

    async def test_bulk_stops_when_concurrent_writer_takes_next_period(self, db, make_asset, session_factory):
        """GIVEN: A bulk request for 6 periods
        WHEN: Another session commits period 3 between the read and the insert
        THEN: The loop stops with DUPLICATE_PERIOD, keeping periods 1 and 2"""
        asset = await make_asset()

        class RacingService(DepreciationService):
            async def _insert_entry(self, asset, entry):
                if entry.period_sequence == 3:
                    async with session_factory() as other:
                        other.add(DepreciationEntry(
                            asset_id=asset.id,
                            period_sequence=3,
                            period_date=entry.period_date,
                            period_amount=entry.period_amount,
                            cumulative_depreciation=entry.cumulative_depreciation,
                            book_value_after=entry.book_value_after,
                        ))
                        await other.commit()
                return await super()._insert_entry(asset, entry)

        service = RacingService(db)
        result = await service.generate_multiple(asset, 6)

        assert result.processed == 2
        assert result.requested == 6
        assert result.stopped_reason == DepreciationFailure.DUPLICATE_PERIOD

        history = await service.get_history(asset.id)
        assert [e.period_sequence for e in history] == [1, 2, 3]
        assert history[-1].cumulative_depreciation == Decimal("300000.00")

    async def test_pending_stops_on_concurrent_duplicate(self, db, make_asset, session_factory):
        asset = await make_asset()

        class RacingService(DepreciationService):
            async def _insert_entry(self, asset, entry):
                if entry.period_sequence == 2:
                    async with session_factory() as other:
                        other.add(DepreciationEntry(
                            asset_id=asset.id,
                            period_sequence=2,
                            period_date=entry.period_date,
                            period_amount=entry.period_amount,
                            cumulative_depreciation=entry.cumulative_depreciation,
                            book_value_after=entry.book_value_after,
                        ))
                        await other.commit()
                return await super()._insert_entry(asset, entry)

        result = await RacingService(db).generate_pending(asset, date(2024, 6, 10))

        assert result.processed == 1
        assert result.requested == 5
        assert result.stopped_reason == DepreciationFailure.DUPLICATE_PERIOD
        assert await count_entries(db, asset.id) == 2

    async def test_until_zero_single_period_life(self, db, make_asset):
        asset = await make_asset(value="1000.00", useful_life=1)
        service = DepreciationService(db)

        result = await service.generate_until_zero(asset)

        assert result.processed == 1
        assert result.stopped_reason is None
        latest = await service.get_latest_entry(asset.id)
        assert latest.period_amount == Decimal("1000.00")
        assert latest.book_value_after == Decimal("0.00")

    async def test_until_zero_conserves_value(self, db, make_asset):
        asset = await make_asset(value="1000.00", useful_life=3)
        service = DepreciationService(db)

        await service.generate_until_zero(asset)
        history = await service.get_history(asset.id)

        assert [e.period_sequence for e in history] == [1, 2, 3]
        assert sum(e.period_amount for e in history) == Decimal("1000.00")
        assert history[-1].period_amount == Decimal("333.34")

    async def test_ledger_is_monotonic(self, db, make_asset):
        asset = await make_asset(value="100.00", useful_life=7)
        service = DepreciationService(db)

        await service.generate_until_zero(asset)
        history = await service.get_history(asset.id)

        for previous, current in zip(history, history[1:]):
            assert current.cumulative_depreciation > previous.cumulative_depreciation
            assert current.book_value_after < previous.book_value_after
            assert current.period_date > previous.period_date
            assert current.cumulative_depreciation + current.book_value_after == Decimal("100.00")

    async def test_until_zero_on_finished_ledger(self, db, make_asset):
        asset = await make_asset(value="1000.00", useful_life=2)
        service = DepreciationService(db)
        await service.generate_until_zero(asset)

        result = await service.generate_until_zero(asset)

        assert result.processed == 0
        assert result.stopped_reason == DepreciationFailure.USEFUL_LIFE_EXHAUSTED

    async def test_until_value_does_not_split_period(self, db, make_asset):
        """GIVEN: Book value 900,000 after three periods
        WHEN: Generating until 850,000
        THEN: Exactly one more period is created, landing at 800,000"""
        asset = await make_asset()
        service = DepreciationService(db)
        await service.generate_multiple(asset, 3)

        result = await service.generate_until_value(asset, Decimal("850000"))

        assert result.processed == 1
        assert await service.calculate_current_book_value(asset) == Decimal("800000.00")

    async def test_until_value_rejects_target_at_or_above_book_value(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)

        with pytest.raises(DepreciationError) as exc_info:
            await service.generate_until_value(asset, Decimal("1200000"))

        assert exc_info.value.reason == DepreciationFailure.INVALID_TARGET
        assert await count_entries(db, asset.id) == 0

    async def test_until_value_rejects_negative_target(self, db, make_asset):
        asset = await make_asset()

        with pytest.raises(DepreciationError):
            await DepreciationService(db).generate_until_value(asset, Decimal("-1"))

    async def test_until_value_ineligible_asset(self, db, make_asset):
        asset = await make_asset(status=AssetStatus.DISPOSED)

        result = await DepreciationService(db).generate_until_value(asset, Decimal("100"))

        assert result.processed == 0
        assert result.stopped_reason == DepreciationFailure.ASSET_NOT_ELIGIBLE

    async def test_reset_clears_ledger(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)
        await service.generate_multiple(asset, 3)

        deleted = await service.reset(asset)

        assert deleted == 3
        assert await service.get_last_sequence(asset.id) == 0
        assert await service.calculate_current_book_value(asset) == Decimal("1200000.00")

        # Regeneration starts again at period 1
        outcome = await service.create_next_entry(asset)
        assert outcome.entry.period_sequence == 1

    async def test_auto_depreciation_on_new_asset(self, db, make_asset):
        asset = await make_asset()

        result = await DepreciationService(db).process_asset_auto_depreciation(asset, date(2024, 4, 20))

        assert result["processed"] == 3
        assert result["pending_periods"] == 3


@pytest.mark.asyncio
class TestProjections:
    """Summary, status, preview and schedule."""

    async def test_summary_after_three_periods(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)
        await service.generate_multiple(asset, 3)

        summary = await service.get_summary(asset, date(2024, 6, 10))

        assert summary["monthly_depreciation"] == Decimal("100000.00")
        assert summary["accumulated_depreciation"] == Decimal("300000.00")
        assert summary["current_value"] == Decimal("900000.00")
        assert summary["depreciated_periods"] == 3
        assert summary["remaining_periods"] == 9
        assert summary["next_period_date"] == date(2024, 5, 15)
        assert summary["completion_percentage"] == Decimal("25.00")
        assert summary["pending_periods"] == 2
        assert summary["is_up_to_date"] is False
        assert len(summary["history"]) == 3

    async def test_status_reports_blocking_reason(self, db, make_asset):
        asset = await make_asset(status=AssetStatus.DISPOSED)

        status = await DepreciationService(db).get_status(asset, date(2024, 6, 10))

        assert status["can_generate_manual"] is False
        assert status["can_generate_auto"] is False
        assert status["blocking_reason"] == DepreciationFailure.ASSET_NOT_ELIGIBLE
        assert status["is_depreciable"] is False
        assert status["next_sequence"] == 1

    async def test_auto_gate(self, db, make_asset):
        asset = await make_asset()
        service = DepreciationService(db)

        assert await service.can_generate_auto(asset, date(2024, 2, 10)) is False
        assert await service.can_generate_auto(asset, date(2024, 2, 20)) is False
        assert await service.can_generate_auto(asset, date(2024, 3, 1)) is True

    async def test_preview_does_not_write(self, db, make_asset):
        asset = await make_asset()

        preview = await DepreciationService(db).get_preview(asset, date(2024, 4, 20))

        assert preview["accumulated_depreciation"] == Decimal("300000.00")
        assert preview["current_value"] == Decimal("900000.00")
        assert preview["periods_depreciated"] == 3
        assert preview["pending_periods"] == 3
        assert await count_entries(db, asset.id) == 0

    async def test_schedule_matches_generated_ledger(self, db, make_asset):
        asset = await make_asset(value="1000.00", useful_life=3, purchase_date=date(2024, 1, 31))
        service = DepreciationService(db)

        schedule = await service.get_schedule(asset)
        await service.generate_until_zero(asset)
        history = await service.get_history(asset.id)

        assert [(r.period_date, r.period_amount) for r in schedule] == [
            (e.period_date, e.period_amount) for e in history
        ]
        assert await service.get_schedule(asset) == []


@pytest.mark.asyncio
class TestSystemWide:
    """Catch-up across every asset."""

    async def test_generate_all_pending(self, db, make_asset):
        first = await make_asset()
        second = await make_asset(value="2400.00", useful_life=24, purchase_date=date(2024, 3, 10))
        disposed = await make_asset(status=AssetStatus.DISPOSED)
        await make_asset(purchase_date=date(2024, 12, 1))

        result = await DepreciationService(db).generate_all_pending(date(2024, 4, 20))

        assert result["total_assets"] == 2
        assert result["assets_processed"] == 2
        assert result["total_processed"] == 4
        assert await count_entries(db, first.id) == 3
        assert await count_entries(db, second.id) == 1
        assert await count_entries(db, disposed.id) == 0

    async def test_system_summary(self, db, make_asset):
        asset = await make_asset()
        await make_asset(status=AssetStatus.LOST)
        service = DepreciationService(db)
        await service.generate_multiple(asset, 2)

        summary = await service.get_system_summary(date(2024, 6, 10))

        assert summary["total_assets"] == 2
        assert summary["active_assets"] == 1
        assert summary["assets_with_pending_depreciation"] == 1
        assert summary["total_pending_periods"] == 3
        assert summary["total_depreciation_records"] == 2
        assert summary["total_depreciated_amount"] == Decimal("200000.00")
