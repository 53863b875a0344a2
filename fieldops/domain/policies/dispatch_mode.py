"""DispatchModePolicy — choose the assignment mode and the offer expiry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from fieldops.domain.value_objects.enums import AssignmentMode


@dataclass(frozen=True)
class CountryOfferPolicy:
    """Per-country rules that shape how an offer is dispatched."""

    country_code: str
    auto_accept: bool
    offer_timeout_hours: int


@dataclass(frozen=True)
class DispatchPolicy:
    """Country rules plus mode defaults, built once from settings."""

    auto_accept_countries: frozenset[str] = frozenset({"ES", "IT"})
    default_offer_timeout_hours: int = 4
    country_offer_timeout_hours: dict[str, int] = field(default_factory=lambda: {"PL": 6})
    offer_window_hours: int = 24
    default_mode: AssignmentMode = AssignmentMode.DIRECT

    def for_country(self, country_code: str) -> CountryOfferPolicy:
        code = country_code.upper()
        return CountryOfferPolicy(
            country_code=code,
            auto_accept=code in self.auto_accept_countries,
            offer_timeout_hours=self.country_offer_timeout_hours.get(
                code, self.default_offer_timeout_hours
            ),
        )


@dataclass(frozen=True)
class ModeSelection:
    mode: AssignmentMode
    reason: str


def select_mode(
    requested: AssignmentMode,
    policy: CountryOfferPolicy,
    qualified_count: int,
) -> ModeSelection:
    """Apply the country auto-accept rule, otherwise keep the requested mode.

    AUTO_ACCEPT is forced only when the country has the rule and exactly one
    provider qualified. Without the rule, an explicit AUTO_ACCEPT request is
    honoured as asked.
    """
    if policy.auto_accept and qualified_count == 1:
        return ModeSelection(
            mode=AssignmentMode.AUTO_ACCEPT,
            reason=f"Country {policy.country_code} auto-accepts a single qualified provider",
        )
    if requested == AssignmentMode.AUTO_ACCEPT and not policy.auto_accept:
        return ModeSelection(mode=requested, reason="Explicit auto-accept requested")
    if requested == AssignmentMode.AUTO_ACCEPT:
        # Auto-accept country but several providers qualified: fall back to a direct offer
        return ModeSelection(
            mode=AssignmentMode.DIRECT,
            reason=f"{qualified_count} qualified providers, auto-accept needs exactly one",
        )
    return ModeSelection(mode=requested, reason=f"Requested mode {requested.value}")


def compute_offer_expiry(
    mode: AssignmentMode,
    now: datetime,
    policy: CountryOfferPolicy,
    offer_window_hours: int,
) -> datetime | None:
    """DIRECT uses the country timeout, OFFER/BROADCAST the offer window, AUTO_ACCEPT none."""
    if mode == AssignmentMode.AUTO_ACCEPT:
        return None
    if mode == AssignmentMode.DIRECT:
        return now + timedelta(hours=policy.offer_timeout_hours)
    return now + timedelta(hours=offer_window_hours)
