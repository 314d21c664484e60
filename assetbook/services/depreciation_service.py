"""
Depreciation Ledger Service

Owns the per-asset straight-line depreciation ledger:
- Single-period creation with duplicate/out-of-order protection
- Summary, status, preview and forward schedule projections
- Bulk operations (catch-up, N periods, until zero, until target value)
- Reset and system-wide catch-up across all eligible assets

Every entry is written in its own transaction. Bulk operations keep the
entries created before a stop and report how many were processed.

USAGE:
    service = DepreciationService(db)
    result = await service.generate_pending(asset, today)
    # result.processed, result.stopped_reason
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from assetbook.core import periods
from assetbook.core.depreciation_math import (
    ZERO,
    ScheduleRow,
    compute_period,
    is_valid_configuration,
    monthly_depreciation,
    preview_figures,
    project_schedule,
    to_money,
)
from assetbook.models.asset import Asset, DepreciationEntry, INELIGIBLE_STATUSES


logger = logging.getLogger(__name__)


class DepreciationFailure(str, Enum):
    """Why a depreciation request did not (fully) happen."""
    ASSET_NOT_ELIGIBLE = "ASSET_NOT_ELIGIBLE"
    USEFUL_LIFE_EXHAUSTED = "USEFUL_LIFE_EXHAUSTED"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"
    DUPLICATE_PERIOD = "DUPLICATE_PERIOD"
    INVALID_TARGET = "INVALID_TARGET"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"


# Outcomes that mean "nothing left to do" rather than a failure
TERMINAL_REASONS = frozenset({
    DepreciationFailure.USEFUL_LIFE_EXHAUSTED,
    DepreciationFailure.FULLY_DEPRECIATED,
})


class DepreciationError(Exception):
    """Raised when a request is rejected before any ledger work starts."""
    def __init__(self, reason: DepreciationFailure, message: str):
        self.reason = reason
        self.message = message
        super().__init__(self.message)


class OutcomeStatus(str, Enum):
    INSERTED = "INSERTED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    REJECTED = "REJECTED"


@dataclass
class EntryOutcome:
    """Result of a single-period creation attempt."""
    status: OutcomeStatus
    entry: Optional[DepreciationEntry] = None
    reason: Optional[DepreciationFailure] = None

    @property
    def inserted(self) -> bool:
        return self.status == OutcomeStatus.INSERTED


@dataclass
class BulkResult:
    """Result of a (possibly multi-period) generation request."""
    processed: int
    stopped_reason: Optional[DepreciationFailure] = None
    requested: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.processed > 0


class DepreciationService:
    """
    Straight-line depreciation ledger engine.

    All date-dependent methods take ``today`` explicitly; the service never
    reads the clock.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Ledger reads ====================

    async def get_latest_entry(self, asset_id: UUID) -> Optional[DepreciationEntry]:
        """Latest ledger row, always read from the database."""
        result = await self.db.execute(
            select(DepreciationEntry)
            .where(DepreciationEntry.asset_id == asset_id)
            .order_by(DepreciationEntry.period_sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_history(self, asset_id: UUID) -> List[DepreciationEntry]:
        result = await self.db.execute(
            select(DepreciationEntry)
            .where(DepreciationEntry.asset_id == asset_id)
            .order_by(DepreciationEntry.period_sequence.asc())
        )
        return list(result.scalars().all())

    async def get_last_sequence(self, asset_id: UUID) -> int:
        result = await self.db.execute(
            select(func.max(DepreciationEntry.period_sequence))
            .where(DepreciationEntry.asset_id == asset_id)
        )
        return result.scalar() or 0

    async def get_next_sequence_number(self, asset: Asset) -> int:
        return await self.get_last_sequence(asset.id) + 1

    async def calculate_current_book_value(self, asset: Asset) -> Decimal:
        latest = await self.get_latest_entry(asset.id)
        if latest:
            return to_money(latest.book_value_after)
        return to_money(asset.value)

    async def get_total_depreciated_amount(self, asset: Asset) -> Decimal:
        result = await self.db.execute(
            select(func.sum(DepreciationEntry.period_amount))
            .where(DepreciationEntry.asset_id == asset.id)
        )
        return to_money(result.scalar() or 0)

    async def is_fully_depreciated(self, asset: Asset) -> bool:
        return await self.calculate_current_book_value(asset) <= 0

    async def get_remaining_depreciable_amount(self, asset: Asset) -> Decimal:
        return max(ZERO, await self.calculate_current_book_value(asset))

    # ==================== Eligibility ====================

    @staticmethod
    def validate_purchase_date(purchase_date: date, today: date) -> bool:
        """Purchase dates in the future are not accepted."""
        return purchase_date <= today

    @staticmethod
    def ensure_configuration(asset: Asset) -> None:
        if not is_valid_configuration(asset.value, asset.useful_life):
            raise DepreciationError(
                DepreciationFailure.INVALID_CONFIGURATION,
                f"Asset {asset.asset_tag} has value={asset.value}, useful_life={asset.useful_life}; "
                f"depreciation cannot be computed"
            )

    async def check_manual_eligibility(self, asset: Asset) -> Optional[DepreciationFailure]:
        """
        Manual preconditions for the next period. Returns None when a period
        can be created, otherwise the blocking reason. The due date is not
        checked here; see can_generate_auto for the calendar-gated rule.
        """
        if asset.status in INELIGIBLE_STATUSES:
            return DepreciationFailure.ASSET_NOT_ELIGIBLE
        if not is_valid_configuration(asset.value, asset.useful_life):
            return DepreciationFailure.INVALID_CONFIGURATION

        next_sequence = await self.get_next_sequence_number(asset)
        if next_sequence > asset.useful_life:
            return DepreciationFailure.USEFUL_LIFE_EXHAUSTED

        latest = await self.get_latest_entry(asset.id)
        if latest is None:
            if to_money(asset.value) <= 0:
                return DepreciationFailure.FULLY_DEPRECIATED
        # Value lowered below what is already recorded counts as fully depreciated
        elif latest.book_value_after <= 0 or latest.cumulative_depreciation >= to_money(asset.value):
            return DepreciationFailure.FULLY_DEPRECIATED

        return None

    async def can_generate_manual(self, asset: Asset) -> bool:
        return await self.check_manual_eligibility(asset) is None

    async def can_generate_auto(self, asset: Asset, today: date) -> bool:
        """Manual preconditions plus the due-date gate."""
        if not await self.can_generate_manual(asset):
            return False
        last_sequence = await self.get_last_sequence(asset.id)
        next_date = periods.next_period_date(asset.purchase_date, last_sequence)
        return periods.is_auto_due(next_date, today)

    async def get_pending_periods(self, asset: Asset, today: date) -> int:
        if not is_valid_configuration(asset.value, asset.useful_life):
            return 0
        last_sequence = await self.get_last_sequence(asset.id)
        return periods.pending_periods(asset.purchase_date, asset.useful_life, last_sequence, today)

    # ==================== Single period ====================

    async def create_next_entry(self, asset: Asset) -> EntryOutcome:
        """
        Append the next period to the asset's ledger.

        The sequence is always last + 1. A row already holding that sequence
        (a concurrent writer got there first) yields ALREADY_EXISTS and leaves
        the ledger untouched.
        """
        reason = await self.check_manual_eligibility(asset)
        if reason is not None:
            logger.info(f"Asset {asset.asset_tag}: next period rejected ({reason.value})")
            return EntryOutcome(status=OutcomeStatus.REJECTED, reason=reason)

        latest = await self.get_latest_entry(asset.id)
        next_sequence = (latest.period_sequence if latest else 0) + 1

        existing = await self.db.execute(
            select(DepreciationEntry.id)
            .where(DepreciationEntry.asset_id == asset.id)
            .where(DepreciationEntry.period_sequence == next_sequence)
        )
        if existing.scalar_one_or_none():
            logger.warning(f"Depreciation period {next_sequence} already exists for asset {asset.asset_tag}")
            return EntryOutcome(status=OutcomeStatus.ALREADY_EXISTS, reason=DepreciationFailure.DUPLICATE_PERIOD)

        previous_cumulative = latest.cumulative_depreciation if latest else ZERO
        figures = compute_period(asset.value, asset.useful_life, next_sequence, previous_cumulative)

        entry = DepreciationEntry(
            asset_id=asset.id,
            period_sequence=next_sequence,
            period_date=periods.period_date(asset.purchase_date, next_sequence),
            period_amount=figures.period_amount,
            cumulative_depreciation=figures.cumulative_depreciation,
            book_value_after=figures.book_value_after,
        )
        return await self._insert_entry(asset, entry)

    async def _insert_entry(self, asset: Asset, entry: DepreciationEntry) -> EntryOutcome:
        """Write one entry as its own transaction."""
        self.db.add(entry)
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self.db.refresh(asset)
            logger.warning(
                f"Depreciation period {entry.period_sequence} for asset {asset.asset_tag} "
                f"was written concurrently; skipping"
            )
            return EntryOutcome(status=OutcomeStatus.ALREADY_EXISTS, reason=DepreciationFailure.DUPLICATE_PERIOD)

        logger.info(
            f"Created depreciation for asset {asset.asset_tag}, period {entry.period_sequence}: "
            f"amount={entry.period_amount}, cumulative={entry.cumulative_depreciation}, "
            f"book value={entry.book_value_after}"
        )
        return EntryOutcome(status=OutcomeStatus.INSERTED, entry=entry)

    async def generate_single(self, asset: Asset) -> BulkResult:
        """Manual one-period generation; ignores the due date."""
        self.ensure_configuration(asset)
        outcome = await self.create_next_entry(asset)
        if outcome.inserted:
            return BulkResult(processed=1, requested=1)
        return BulkResult(processed=0, stopped_reason=outcome.reason, requested=1)

    # ==================== Bulk operations ====================

    async def generate_pending(self, asset: Asset, today: date) -> BulkResult:
        """Catch up every period that is due by the calendar but not recorded."""
        if asset.status in INELIGIBLE_STATUSES:
            logger.info(f"Cannot generate depreciation for inactive asset {asset.asset_tag}")
            return BulkResult(processed=0, stopped_reason=DepreciationFailure.ASSET_NOT_ELIGIBLE)
        self.ensure_configuration(asset)

        max_iterations = asset.useful_life
        processed = 0
        stopped_reason = None
        requested = await self.get_pending_periods(asset, today)

        logger.info(f"Generating {requested} pending depreciation periods for asset {asset.asset_tag}")

        while processed < max_iterations:
            if await self.get_pending_periods(asset, today) <= 0:
                break
            outcome = await self.create_next_entry(asset)
            if not outcome.inserted:
                stopped_reason = outcome.reason
                break
            processed += 1

        logger.info(f"Completed pending depreciation for asset {asset.asset_tag}: {processed} processed")
        return BulkResult(processed=processed, stopped_reason=stopped_reason, requested=requested)

    async def generate_multiple(self, asset: Asset, count: int) -> BulkResult:
        """Create up to ``count`` periods, stopping at the end of useful life."""
        if asset.status in INELIGIBLE_STATUSES:
            return BulkResult(processed=0, stopped_reason=DepreciationFailure.ASSET_NOT_ELIGIBLE, requested=count)
        self.ensure_configuration(asset)

        processed = 0
        stopped_reason = None
        logger.info(f"Generating {count} depreciation periods for asset {asset.asset_tag}")

        for _ in range(count):
            outcome = await self.create_next_entry(asset)
            if not outcome.inserted:
                stopped_reason = outcome.reason
                break
            processed += 1

        logger.info(f"Completed multiple depreciation for asset {asset.asset_tag}: {processed}/{count} processed")
        return BulkResult(processed=processed, stopped_reason=stopped_reason, requested=count)

    async def generate_until_zero(self, asset: Asset) -> BulkResult:
        """Create periods until book value reaches zero or useful life ends."""
        if asset.status in INELIGIBLE_STATUSES:
            logger.info(f"Cannot generate depreciation for inactive asset {asset.asset_tag}")
            return BulkResult(processed=0, stopped_reason=DepreciationFailure.ASSET_NOT_ELIGIBLE)
        self.ensure_configuration(asset)

        max_iterations = asset.useful_life
        processed = 0
        stopped_reason = None

        while processed < max_iterations:
            outcome = await self.create_next_entry(asset)
            if not outcome.inserted:
                stopped_reason = outcome.reason
                break
            processed += 1
            if outcome.entry.book_value_after <= 0:
                logger.info(f"Asset {asset.asset_tag} reached zero value after {processed} periods")
                break

        # Reaching the end is the goal here, not a stop condition
        if stopped_reason in TERMINAL_REASONS and processed > 0:
            stopped_reason = None

        logger.info(f"Completed depreciation until zero for asset {asset.asset_tag}: {processed} processed")
        return BulkResult(processed=processed, stopped_reason=stopped_reason)

    async def generate_until_value(self, asset: Asset, target_value: Decimal) -> BulkResult:
        """
        Create whole periods until book value is at or below ``target_value``.
        The period that crosses the target is not split.
        """
        if asset.status in INELIGIBLE_STATUSES:
            logger.info(f"Cannot generate depreciation for inactive asset {asset.asset_tag}")
            return BulkResult(processed=0, stopped_reason=DepreciationFailure.ASSET_NOT_ELIGIBLE)
        self.ensure_configuration(asset)

        target_value = to_money(target_value)
        current_value = await self.calculate_current_book_value(asset)

        if target_value < 0 or target_value >= current_value:
            logger.warning(
                f"Rejected target value {target_value} for asset {asset.asset_tag}, "
                f"current book value {current_value}"
            )
            raise DepreciationError(
                DepreciationFailure.INVALID_TARGET,
                f"Target value must be non-negative and below the current book value ({current_value})"
            )

        max_iterations = asset.useful_life
        processed = 0
        stopped_reason = None

        while processed < max_iterations and current_value > target_value:
            outcome = await self.create_next_entry(asset)
            if not outcome.inserted:
                stopped_reason = outcome.reason
                break
            processed += 1
            current_value = to_money(outcome.entry.book_value_after)

        logger.info(
            f"Completed depreciation until value {target_value} for asset {asset.asset_tag}: "
            f"{processed} processed, book value {current_value}"
        )
        return BulkResult(processed=processed, stopped_reason=stopped_reason)

    async def reset(self, asset: Asset) -> int:
        """Delete every ledger row for the asset. Returns the number removed."""
        result = await self.db.execute(
            delete(DepreciationEntry).where(DepreciationEntry.asset_id == asset.id)
        )
        await self.db.commit()
        deleted = result.rowcount or 0
        logger.info(f"Reset depreciation for asset {asset.asset_tag}, deleted {deleted} records")
        return deleted

    async def process_asset_auto_depreciation(self, asset: Asset, today: date) -> Dict:
        """Catch up a newly created or updated asset."""
        if asset.status in INELIGIBLE_STATUSES:
            logger.info(f"Skipping auto depreciation for inactive asset {asset.asset_tag}")
            return {"processed": 0, "pending_periods": 0, "message": "Asset is not active"}

        pending = await self.get_pending_periods(asset, today)
        if pending <= 0:
            return {"processed": 0, "pending_periods": 0, "message": "No pending depreciation needed"}

        result = await self.generate_pending(asset, today)
        return {
            "processed": result.processed,
            "pending_periods": pending,
            "message": f"Generated {result.processed} of {pending} pending periods",
        }

    # ==================== Projections ====================

    async def get_summary(self, asset: Asset, today: date, include_history: bool = True) -> Dict:
        """Ledger-derived figures for an asset."""
        latest = await self.get_latest_entry(asset.id)
        value = to_money(asset.value)

        accumulated = to_money(latest.cumulative_depreciation) if latest else ZERO
        current_value = to_money(latest.book_value_after) if latest else value
        depreciated_periods = latest.period_sequence if latest else 0
        remaining_periods = max(0, asset.useful_life - depreciated_periods)

        if value > 0:
            completion = to_money(accumulated / value * 100)
        else:
            completion = ZERO

        elapsed = periods.elapsed_months(asset.purchase_date, today)
        expected = periods.expected_periods(asset.purchase_date, asset.useful_life, today)
        pending = max(0, expected - depreciated_periods)

        summary = {
            "asset_id": asset.id,
            "monthly_depreciation": monthly_depreciation(value, asset.useful_life),
            "accumulated_depreciation": accumulated,
            "current_value": current_value,
            "depreciated_periods": depreciated_periods,
            "remaining_periods": remaining_periods,
            "next_period_date": periods.next_period_date(asset.purchase_date, depreciated_periods),
            "completion_percentage": completion,
            "is_depreciable": asset.status not in INELIGIBLE_STATUSES and remaining_periods > 0,
            "elapsed_periods": elapsed,
            "expected_periods": expected,
            "pending_periods": pending,
            "is_up_to_date": pending == 0,
        }
        if include_history:
            summary["history"] = await self.get_history(asset.id)
        return summary

    async def get_status(self, asset: Asset, today: date) -> Dict:
        """Summary plus what can be generated next."""
        summary = await self.get_summary(asset, today, include_history=False)
        summary.update({
            "can_generate_manual": await self.can_generate_manual(asset),
            "can_generate_auto": await self.can_generate_auto(asset, today),
            "blocking_reason": await self.check_manual_eligibility(asset),
            "next_sequence": summary["depreciated_periods"] + 1,
            "total_useful_life": asset.useful_life,
            "original_value": to_money(asset.value),
            "current_status": asset.status,
            "purchase_date": asset.purchase_date,
            "as_of": today,
        })
        return summary

    async def get_preview(self, asset: Asset, today: date) -> Dict:
        """As-of-today figures from the formula alone, ignoring the ledger."""
        expected = periods.expected_periods(asset.purchase_date, asset.useful_life, today)
        figures = preview_figures(asset.value, asset.useful_life, expected)
        return {
            "asset_id": asset.id,
            "monthly_depreciation": figures.period_amount,
            "accumulated_depreciation": figures.cumulative_depreciation,
            "current_value": figures.book_value_after,
            "periods_depreciated": expected,
            "remaining_periods": max(0, asset.useful_life - expected),
            "elapsed_periods": periods.elapsed_months(asset.purchase_date, today),
            "pending_periods": await self.get_pending_periods(asset, today),
            "as_of": today,
        }

    async def get_schedule(self, asset: Asset) -> List[ScheduleRow]:
        """Projected remaining periods from the current ledger state."""
        latest = await self.get_latest_entry(asset.id)
        return project_schedule(
            asset.purchase_date,
            asset.value,
            asset.useful_life,
            latest.period_sequence if latest else 0,
            latest.cumulative_depreciation if latest else ZERO,
        )

    # ==================== System-wide ====================

    async def _eligible_asset_ids(self, today: date) -> List[UUID]:
        result = await self.db.execute(
            select(Asset.id)
            .where(Asset.status.notin_(sorted(INELIGIBLE_STATUSES)))
            .where(Asset.purchase_date <= today)
            .order_by(Asset.asset_tag)
        )
        return list(result.scalars().all())

    async def generate_all_pending(self, today: date) -> Dict:
        """
        Catch up every eligible asset. One asset's failure is logged and
        recorded in its detail row; the run carries on with the next asset.
        """
        asset_ids = await self._eligible_asset_ids(today)
        results = {
            "total_assets": len(asset_ids),
            "total_processed": 0,
            "assets_processed": 0,
            "details": [],
            "as_of": today.isoformat(),
        }

        logger.info(f"Starting system-wide pending depreciation for {len(asset_ids)} assets as of {today}")

        for asset_id in asset_ids:
            asset = await self.db.get(Asset, asset_id, populate_existing=True)
            if asset is None:
                continue
            pending = 0
            try:
                pending = await self.get_pending_periods(asset, today)
                if pending <= 0:
                    continue

                result = await self.generate_pending(asset, today)
                results["details"].append({
                    "asset_id": str(asset.id),
                    "asset_tag": asset.asset_tag,
                    "pending_periods": pending,
                    "processed_periods": result.processed,
                    "success": result.processed > 0,
                    "stopped_reason": result.stopped_reason.value if result.stopped_reason else None,
                })
                if result.processed > 0:
                    results["assets_processed"] += 1
                    results["total_processed"] += result.processed
            except Exception as e:
                logger.error(f"Failed pending depreciation for asset {asset_id}: {e}")
                await self.db.rollback()
                results["details"].append({
                    "asset_id": str(asset_id),
                    "asset_tag": None,
                    "pending_periods": pending,
                    "processed_periods": 0,
                    "success": False,
                    "error": str(e),
                })

        logger.info(
            f"System-wide depreciation completed. Total processed: {results['total_processed']} "
            f"periods across {results['assets_processed']} assets"
        )
        return results

    async def get_system_summary(self, today: date) -> Dict:
        total_assets = (await self.db.execute(select(func.count(Asset.id)))).scalar() or 0
        active_ids = await self._eligible_asset_ids(today)

        assets_with_pending = 0
        total_pending = 0
        for asset_id in active_ids:
            asset = await self.db.get(Asset, asset_id)
            pending = await self.get_pending_periods(asset, today)
            if pending > 0:
                assets_with_pending += 1
                total_pending += pending

        total_records = (await self.db.execute(select(func.count(DepreciationEntry.id)))).scalar() or 0
        total_amount = (await self.db.execute(select(func.sum(DepreciationEntry.period_amount)))).scalar() or 0

        return {
            "total_assets": total_assets,
            "active_assets": len(active_ids),
            "assets_with_pending_depreciation": assets_with_pending,
            "total_pending_periods": total_pending,
            "total_depreciation_records": total_records,
            "total_depreciated_amount": to_money(total_amount),
            "as_of": today,
        }
