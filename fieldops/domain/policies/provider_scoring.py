"""ProviderScoringPolicy — eligibility funnel and deterministic provider ranking."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from fieldops.domain.entities.provider import Provider
from fieldops.domain.entities.service_order import ServiceOrder
from fieldops.domain.value_objects.enums import RiskStatus

TIER_WEIGHT = 20
BEST_TIER_BONUS_BASE = 4
RISK_POINTS: dict[RiskStatus, int] = {
    RiskStatus.OK: 20,
    RiskStatus.ON_WATCH: 0,
}
AVAILABILITY_POINTS = 20


@dataclass(frozen=True)
class FunnelEntry:
    """One step of the eligibility/scoring audit for a single provider."""

    step: str
    provider_id: int
    passed: bool
    reasons: tuple[str, ...]
    score: float | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["reasons"] = list(self.reasons)
        return data


@dataclass(frozen=True)
class CandidateScore:
    provider: Provider
    score: float
    reasons: tuple[str, ...]


@dataclass
class ProviderRanking:
    """Result of the policy: ranked qualified providers plus the audit funnel."""

    rankings: list[CandidateScore]
    funnel: list[FunnelEntry] = field(default_factory=list)
    evaluated: int = 0

    @property
    def best(self) -> CandidateScore | None:
        return self.rankings[0] if self.rankings else None

    def funnel_as_dicts(self) -> list[dict]:
        return [entry.to_dict() for entry in self.funnel]


def check_eligibility(provider: Provider, order: ServiceOrder) -> tuple[str, str] | None:
    """Return ``(step, reason)`` of the first failed eligibility check, or None."""
    if not provider.active:
        return "eligibility.active", "provider_inactive"
    if provider.is_suspended():
        return "eligibility.risk", "provider_suspended"
    if provider.country_code.upper() != order.country_code.upper():
        return "eligibility.country", "country_mismatch"
    if not provider.has_certifications(order.required_certifications):
        return "eligibility.certifications", "missing_required_certifications"
    return None


def score_provider(provider: Provider) -> tuple[float, tuple[str, ...]]:
    """Pure function: score an eligible provider.

    Business rules:
      1. Tier  →  (4 - tier) * 20 points, so tier 1 is worth 60 and tier 3 is worth 20.
      2. Risk  →  OK adds 20, ON_WATCH adds nothing.
      3. Availability  →  an available provider adds 20.
    """
    tier_points = max(0, BEST_TIER_BONUS_BASE - provider.tier) * TIER_WEIGHT
    risk_points = RISK_POINTS.get(provider.risk_status, 0)
    availability_points = AVAILABILITY_POINTS if provider.available else 0

    reasons = (
        f"tier_{provider.tier}:+{tier_points}",
        f"risk_{provider.risk_status.value.lower()}:+{risk_points}",
        f"{'available' if provider.available else 'unavailable'}:+{availability_points}",
    )
    return float(tier_points + risk_points + availability_points), reasons


def rank_providers(order: ServiceOrder, candidates: list[Provider]) -> ProviderRanking:
    """Filter candidates through the eligibility funnel and rank the survivors.

    Ranking is by score descending; ties are broken by provider id ascending so
    the same input always yields the same selection.
    """
    funnel: list[FunnelEntry] = []
    scored: list[CandidateScore] = []

    for provider in sorted(candidates, key=lambda p: p.id):
        failure = check_eligibility(provider, order)
        if failure is not None:
            step, reason = failure
            funnel.append(FunnelEntry(step=step, provider_id=provider.id, passed=False, reasons=(reason,)))
            continue

        score, reasons = score_provider(provider)
        funnel.append(
            FunnelEntry(step="scoring", provider_id=provider.id, passed=True, reasons=reasons, score=score)
        )
        scored.append(CandidateScore(provider=provider, score=score, reasons=reasons))

    rankings = sorted(scored, key=lambda c: (-c.score, c.provider.id))
    return ProviderRanking(rankings=rankings, funnel=funnel, evaluated=len(candidates))
