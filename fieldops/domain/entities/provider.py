"""Provider and WorkTeam entities — the companies and crews that execute jobs."""

from dataclasses import dataclass, field

from fieldops.domain.value_objects.enums import RiskStatus


@dataclass
class Provider:
    id: int | None
    name: str
    country_code: str
    tier: int
    risk_status: RiskStatus = RiskStatus.OK
    certifications: set[str] = field(default_factory=set)
    active: bool = True
    available: bool = True

    def has_certifications(self, required: set[str]) -> bool:
        return required.issubset(self.certifications)

    def is_suspended(self) -> bool:
        return self.risk_status == RiskStatus.SUSPENDED


@dataclass
class WorkTeam:
    id: int | None
    provider_id: int
    name: str
    active: bool = True
    certifications: set[str] = field(default_factory=set)
