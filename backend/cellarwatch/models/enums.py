from enum import StrEnum


class TankStatus(StrEnum):
    available = "available"
    in_use = "in_use"
    cleaning = "cleaning"
    maintenance = "maintenance"


class TankMaterial(StrEnum):
    stainless_steel = "stainless_steel"
    oak = "oak"
    concrete = "concrete"
    fiberglass = "fiberglass"


class BatchStatus(StrEnum):
    active = "active"
    paused = "paused"
    completed = "completed"
    cancelled = "cancelled"


class ReadingSource(StrEnum):
    manual = "manual"
    iot = "iot"


class UserRole(StrEnum):
    admin = "admin"
    winemaker = "winemaker"
    worker = "worker"


TERMINAL_BATCH_STATUSES = frozenset({BatchStatus.completed.value, BatchStatus.cancelled.value})
