"""ServiceOrder entity — a customer job waiting for a provider."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ServiceOrder:
    id: int | None
    country_code: str
    service_type: str
    scheduled_date: datetime | None
    status: str = "CREATED"
    required_certifications: set[str] = field(default_factory=set)
    external_ref: str | None = None
