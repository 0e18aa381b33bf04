from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cellarwatch.models.enums import TankMaterial, TankStatus


class TankBase(BaseModel):
    name: str = Field(min_length=2, max_length=140)
    capacity_liters: float = Field(gt=0)
    material: TankMaterial
    location: str | None = Field(default=None, max_length=140)
    notes: str | None = None


class TankCreate(TankBase):
    pass


class TankUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=140)
    capacity_liters: float | None = Field(default=None, gt=0)
    material: TankMaterial | None = None
    status: TankStatus | None = None
    location: str | None = Field(default=None, max_length=140)
    notes: str | None = None


class TankRead(TankBase):
    id: int
    status: TankStatus
    current_batch_id: int | None
    active_batch: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
