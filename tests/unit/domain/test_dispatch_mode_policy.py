"""Tests for DispatchModePolicy."""

from datetime import timedelta

from fakes import NOW
from fieldops.domain.policies.dispatch_mode import (
    DispatchPolicy,
    compute_offer_expiry,
    select_mode,
)
from fieldops.domain.value_objects.enums import AssignmentMode

POLICY = DispatchPolicy()


def test_country_rules_defaults():
    es = POLICY.for_country("es")
    assert es.country_code == "ES"
    assert es.auto_accept
    assert es.offer_timeout_hours == 4

    pl = POLICY.for_country("PL")
    assert not pl.auto_accept
    assert pl.offer_timeout_hours == 6


def test_auto_accept_forced_with_single_qualified_provider():
    sel = select_mode(AssignmentMode.OFFER, POLICY.for_country("IT"), qualified_count=1)
    assert sel.mode == AssignmentMode.AUTO_ACCEPT


def test_auto_accept_country_with_several_providers_keeps_requested_mode():
    sel = select_mode(AssignmentMode.BROADCAST, POLICY.for_country("ES"), qualified_count=3)
    assert sel.mode == AssignmentMode.BROADCAST


def test_auto_accept_request_in_rule_country_with_several_providers_falls_back_to_direct():
    sel = select_mode(AssignmentMode.AUTO_ACCEPT, POLICY.for_country("ES"), qualified_count=2)
    assert sel.mode == AssignmentMode.DIRECT


def test_explicit_auto_accept_honoured_outside_rule_countries():
    sel = select_mode(AssignmentMode.AUTO_ACCEPT, POLICY.for_country("FR"), qualified_count=4)
    assert sel.mode == AssignmentMode.AUTO_ACCEPT


def test_requested_mode_kept_without_rule():
    sel = select_mode(AssignmentMode.DIRECT, POLICY.for_country("FR"), qualified_count=1)
    assert sel.mode == AssignmentMode.DIRECT


def test_direct_expiry_uses_country_timeout():
    expiry = compute_offer_expiry(AssignmentMode.DIRECT, NOW, POLICY.for_country("PL"), 24)
    assert expiry == NOW + timedelta(hours=6)


def test_offer_and_broadcast_use_offer_window():
    fr = POLICY.for_country("FR")
    assert compute_offer_expiry(AssignmentMode.OFFER, NOW, fr, 24) == NOW + timedelta(hours=24)
    assert compute_offer_expiry(AssignmentMode.BROADCAST, NOW, fr, 12) == NOW + timedelta(hours=12)


def test_auto_accept_has_no_expiry():
    assert compute_offer_expiry(AssignmentMode.AUTO_ACCEPT, NOW, POLICY.for_country("ES"), 24) is None
