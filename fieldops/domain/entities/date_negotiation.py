"""DateNegotiation entity — one counter-proposal within an assignment."""

from dataclasses import dataclass
from datetime import datetime

from fieldops.domain.value_objects.enums import ProposedBy


@dataclass(frozen=True)
class DateNegotiation:
    round: int
    proposed_date: datetime
    proposed_by: ProposedBy
    notes: str | None = None
    created_at: datetime | None = None
    id: int | None = None
