from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Columns are naive UTC; offset-aware input is normalised on the way in.
UtcDatetime = Annotated[datetime, AfterValidator(_as_naive_utc)]
