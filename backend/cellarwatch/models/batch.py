from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cellarwatch.core.database import Base
from cellarwatch.models.enums import BatchStatus, ReadingSource

if TYPE_CHECKING:
    from cellarwatch.models.tank import Tank


class FermentationBatch(Base):
    __tablename__ = "fermentation_batches"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tank_id: Mapped[int] = mapped_column(ForeignKey("tanks.id"), nullable=False, index=True)
    harvest_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(140), nullable=False)
    grape_variety: Mapped[str] = mapped_column(String(140), nullable=False)
    volume_liters: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default=BatchStatus.active.value, nullable=False, index=True)

    target_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    yeast_strain: Mapped[str | None] = mapped_column(String(140), nullable=True)
    initial_brix: Mapped[float | None] = mapped_column(Float, nullable=True)
    initial_ph: Mapped[float | None] = mapped_column(Float, nullable=True)

    start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    expected_end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tank: Mapped[Tank] = relationship(back_populates="batches")
    readings: Mapped[list[FermentationReading]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
    )


class FermentationReading(Base):
    __tablename__ = "fermentation_readings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("fermentation_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(20), default=ReadingSource.manual.value, nullable=False)

    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    brix: Mapped[float | None] = mapped_column(Float, nullable=True)
    ph: Mapped[float | None] = mapped_column(Float, nullable=True)
    density: Mapped[float | None] = mapped_column(Float, nullable=True)
    alcohol_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    volatile_acidity: Mapped[float | None] = mapped_column(Float, nullable=True)
    free_so2: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_so2: Mapped[float | None] = mapped_column(Float, nullable=True)

    color: Mapped[str | None] = mapped_column(String(60), nullable=True)
    clarity: Mapped[str | None] = mapped_column(String(60), nullable=True)
    aroma_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    batch: Mapped[FermentationBatch] = relationship(back_populates="readings")
