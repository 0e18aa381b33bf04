from datetime import datetime

from pydantic import BaseModel, Field


class DashboardSummaryRead(BaseModel):
    generated_at: datetime
    vineyard_count: int | None
    harvest_count: int | None
    tank_count: int
    available_tank_count: int
    batch_count: int
    active_batch_count: int
    unavailable_sources: list[str] = Field(default_factory=list)
