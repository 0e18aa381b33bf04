from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cellarwatch.core.database import Base
from cellarwatch.models.enums import TankStatus

if TYPE_CHECKING:
    from cellarwatch.models.batch import FermentationBatch


class Tank(Base):
    __tablename__ = "tanks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(140), nullable=False)
    capacity_liters: Mapped[float] = mapped_column(Float, nullable=False)
    material: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(30), default=TankStatus.available.value, nullable=False, index=True)
    location: Mapped[str | None] = mapped_column(String(140), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Not a foreign key; kept in step with the batch by reserve/release.
    current_batch_id: Mapped[int | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    batches: Mapped[list[FermentationBatch]] = relationship(back_populates="tank")
