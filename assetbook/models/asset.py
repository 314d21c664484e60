"""Asset register and depreciation ledger models.

Supports:
- Asset register with lifecycle status
- Append-only straight-line depreciation ledger, one row per asset per period
"""
import uuid
from datetime import datetime, date, timezone
from enum import Enum
from typing import List, Optional
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Date
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assetbook.database import Base
from assetbook.db_types import UUIDType


# ==================== Enums ====================

class AssetStatus(str, Enum):
    """Asset lifecycle status."""
    IN_USE = "In Use"
    IN_REPAIR = "In Repair"
    DISPOSED = "Disposed"
    LOST = "Lost"


# Statuses that permanently exclude an asset from new depreciation
INELIGIBLE_STATUSES = frozenset({AssetStatus.DISPOSED.value, AssetStatus.LOST.value})


# ==================== Asset ====================

class Asset(Base):
    """
    Asset register entry.

    Only the fields the depreciation ledger depends on are modelled in
    detail; value, useful_life and purchase_date may be edited after ledger
    entries exist, which leaves the ledger stale until it is reset.
    """
    __tablename__ = "assets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    # Identification
    asset_tag: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Depreciable base
    value: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        comment="Acquisition value, the depreciable base"
    )
    purchase_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Anchor for period dates"
    )
    useful_life: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Useful life in months"
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(50),
        default=AssetStatus.IN_USE.value,
        nullable=False,
        index=True,
        comment="In Use, In Repair, Disposed, Lost"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    depreciation_entries: Mapped[List["DepreciationEntry"]] = relationship(
        "DepreciationEntry",
        back_populates="asset",
        order_by="DepreciationEntry.period_sequence",
        passive_deletes=True,
    )

    @property
    def is_eligible_status(self) -> bool:
        return self.status not in INELIGIBLE_STATUSES

    def __repr__(self) -> str:
        return f"<Asset(tag='{self.asset_tag}', name='{self.name}')>"


# ==================== Depreciation Entry ====================

class DepreciationEntry(Base):
    """
    One period of straight-line depreciation for an asset.

    Rows are append-only: period_sequence runs 1..N per asset with no gaps,
    guarded by a unique constraint on (asset_id, period_sequence).
    """
    __tablename__ = "depreciation_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Period
    period_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    period_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Purchase day-of-month, clamped to month end"
    )

    # Amounts
    period_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    cumulative_depreciation: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    book_value_after: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    asset: Mapped["Asset"] = relationship("Asset", back_populates="depreciation_entries")

    __table_args__ = (
        UniqueConstraint('asset_id', 'period_sequence', name='uq_depreciation_asset_sequence'),
        Index('idx_depreciation_asset_date', 'asset_id', 'period_date'),
    )

    def __repr__(self) -> str:
        return (
            f"<DepreciationEntry(asset_id='{self.asset_id}', seq={self.period_sequence}, "
            f"amount={self.period_amount})>"
        )
