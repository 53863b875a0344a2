"""Tests for CSV normalizer functions."""

from fieldops.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    normalize_country_code,
    parse_bool,
    parse_certifications,
    parse_risk_status,
)

# ─── normalize_column_name ───────────────────────────────────────────


def test_strip_trailing_spaces():
    assert normalize_column_name("  Country  ") == "country"


def test_remove_bom():
    assert normalize_column_name("\ufeffName") == "name"


def test_replace_spaces_with_underscore():
    assert normalize_column_name("Scheduled Date") == "scheduled_date"


def test_non_breaking_space():
    assert normalize_column_name("Risk\u00a0Status") == "risk_status"


def test_strip_punctuation():
    assert normalize_column_name("Tier (1-3)") == "tier_13"


# ─── clean_string ────────────────────────────────────────────────────


def test_clean_string():
    assert clean_string("  x ") == "x"
    assert clean_string("   ") is None
    assert clean_string(None) is None


# ─── codes and flags ─────────────────────────────────────────────────


def test_country_code_from_code_or_name():
    assert normalize_country_code(" es ") == "ES"
    assert normalize_country_code("Italia") == "IT"
    assert normalize_country_code("Atlantis") is None
    assert normalize_country_code("") is None


def test_parse_certifications_separators():
    assert parse_certifications("gas, electrical;HVAC|water") == {"GAS", "ELECTRICAL", "HVAC", "WATER"}
    assert parse_certifications("") == set()
    assert parse_certifications(None) == set()


def test_parse_bool():
    assert parse_bool("Yes") is True
    assert parse_bool("nie") is False
    assert parse_bool("") is True
    assert parse_bool("maybe", default=False) is False


def test_parse_risk_status():
    assert parse_risk_status("on-watch") == "ON_WATCH"
    assert parse_risk_status("suspended") == "SUSPENDED"
    assert parse_risk_status(None) == "OK"
