from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cellarwatch.models.enums import BatchStatus, ReadingSource, TankStatus
from cellarwatch.schemas.common import UtcDatetime


class FermentationReadingBase(BaseModel):
    temperature: float | None = Field(default=None, ge=-5, le=45)
    brix: float | None = Field(default=None, ge=0, le=50)
    ph: float | None = Field(default=None, ge=0, le=14)
    density: float | None = Field(default=None, ge=0.8, le=1.2)
    alcohol_percent: float | None = Field(default=None, ge=0, le=22)
    volatile_acidity: float | None = Field(default=None, ge=0, le=3)
    free_so2: float | None = Field(default=None, ge=0, le=100)
    total_so2: float | None = Field(default=None, ge=0, le=350)
    color: str | None = Field(default=None, max_length=60)
    clarity: str | None = Field(default=None, max_length=60)
    aroma_notes: str | None = None
    notes: str | None = None


class FermentationReadingCreate(FermentationReadingBase):
    recorded_at: UtcDatetime | None = None


class IotReadingCreate(BaseModel):
    batch_id: int = Field(gt=0)
    temperature: float = Field(ge=-5, le=45)
    # Accepted from sensors that report it; not stored.
    humidity: float | None = None
    recorded_at: UtcDatetime | None = None


class FermentationReadingRead(FermentationReadingBase):
    id: int
    batch_id: int
    source: ReadingSource
    recorded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BatchBase(BaseModel):
    name: str = Field(min_length=2, max_length=140)
    grape_variety: str = Field(min_length=2, max_length=140)
    volume_liters: float = Field(gt=0)
    harvest_id: str | None = Field(default=None, max_length=64)
    target_temperature: float | None = Field(default=None, ge=5, le=35)
    yeast_strain: str | None = Field(default=None, max_length=140)
    initial_brix: float | None = Field(default=None, ge=0, le=50)
    initial_ph: float | None = Field(default=None, ge=0, le=14)
    notes: str | None = None


class BatchCreate(BatchBase):
    tank_id: int = Field(gt=0)
    start_date: UtcDatetime | None = None
    expected_end_date: UtcDatetime | None = None


class BatchUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=140)
    target_temperature: float | None = Field(default=None, ge=5, le=35)
    yeast_strain: str | None = Field(default=None, max_length=140)
    expected_end_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    notes: str | None = None
    status: BatchStatus | None = None
    release_tank_to: TankStatus = TankStatus.available


class BatchTransitionRequest(BaseModel):
    end_date: UtcDatetime | None = None
    release_tank_to: TankStatus = TankStatus.available


class BatchRead(BatchBase):
    id: int
    tank_id: int
    status: BatchStatus
    start_date: datetime | None
    end_date: datetime | None
    expected_end_date: datetime | None
    created_by: str
    latest_reading: FermentationReadingRead | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BatchStatsRead(BaseModel):
    batch_id: int
    total_readings: int
    avg_temperature: float | None = None
    min_temperature: float | None = None
    max_temperature: float | None = None
    latest_temperature: float | None = None
    latest_brix: float | None = None
    latest_ph: float | None = None
    latest_alcohol: float | None = None
    duration_days: int | None = None
