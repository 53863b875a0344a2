"""CSV loader — reads and normalizes provider / work team / service order files."""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path

from fieldops.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    normalize_country_code,
    parse_bool,
    parse_certifications,
    parse_risk_status,
)

logger = logging.getLogger(__name__)

_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d.%m.%Y",
)


def _sniff_dialect(sample: str) -> type[csv.Dialect]:
    """Detect the delimiter (comma/semicolon/tab) from the header line."""
    if not sample:
        return csv.excel

    first_line = sample.splitlines()[0]
    delims = [";", ",", "\t"]
    counts = {d: first_line.count(d) for d in delims}
    best_delim = max(counts, key=counts.get)

    if counts[best_delim] > 0:
        class DynamicDialect(csv.excel):
            delimiter = best_delim
        return DynamicDialect
    return csv.excel


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str]]:
    """Read a CSV file with BOM handling and column normalization.

    Args:
        file_path: path to the CSV file.
        encoding: file encoding (utf-8-sig strips BOM automatically).

    Returns:
        List of dicts with normalized column names.
    """
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = []
        for raw_row in reader:
            row = {col_map[k]: clean_string(v) for k, v in raw_row.items() if k is not None}
            rows.append(row)

    logger.info("Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values()))
    return rows


def load_providers(file_path: Path) -> list[dict]:
    """Load the providers CSV.

    Expected columns: name, country (code or name), tier (1-3), risk_status,
    certifications, active, available
    """
    providers = []
    for row in _read_csv(file_path):
        name = clean_string(row.get("name") or row.get("provider"))
        country = normalize_country_code(row.get("country_code") or row.get("country"))
        if not name or not country:
            logger.warning("Skipping provider row without name/country: %s", row)
            continue
        providers.append({
            "name": name,
            "country_code": country,
            "tier": _parse_tier(row.get("tier")),
            "risk_status": parse_risk_status(row.get("risk_status") or row.get("risk")),
            "certifications": parse_certifications(row.get("certifications")),
            "active": parse_bool(row.get("active")),
            "available": parse_bool(row.get("available")),
        })
    logger.info("Parsed %d providers", len(providers))
    return providers


def load_work_teams(file_path: Path) -> list[dict]:
    """Load the work teams CSV.

    Expected columns: name, provider (provider name), certifications, active
    """
    teams = []
    for row in _read_csv(file_path):
        name = clean_string(row.get("name") or row.get("team"))
        provider_name = clean_string(row.get("provider") or row.get("provider_name"))
        if not name or not provider_name:
            logger.warning("Skipping work team row without name/provider: %s", row)
            continue
        teams.append({
            "name": name,
            "provider_name": provider_name,
            "certifications": parse_certifications(row.get("certifications")),
            "active": parse_bool(row.get("active")),
        })
    logger.info("Parsed %d work teams", len(teams))
    return teams


def load_service_orders(file_path: Path) -> list[dict]:
    """Load the service orders CSV.

    Expected columns: external_ref (or id), country, service_type,
    scheduled_date, required_certifications
    """
    orders = []
    for row in _read_csv(file_path):
        external_ref = clean_string(row.get("external_ref") or row.get("reference") or row.get("id"))
        country = normalize_country_code(row.get("country_code") or row.get("country"))
        if not external_ref or not country:
            logger.warning("Skipping service order row without reference/country: %s", row)
            continue
        orders.append({
            "external_ref": external_ref,
            "country_code": country,
            "service_type": clean_string(row.get("service_type") or row.get("type")) or "INSTALLATION",
            "scheduled_date": parse_datetime(row.get("scheduled_date") or row.get("date")),
            "required_certifications": parse_certifications(
                row.get("required_certifications") or row.get("certifications")
            ),
        })
    logger.info("Parsed %d service orders", len(orders))
    return orders


def parse_datetime(raw: str | None) -> datetime | None:
    """Parse a date/time in one of the supported formats; naive values are UTC."""
    value = clean_string(raw)
    if value is None:
        return None
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    logger.warning("Could not parse date: %s", value)
    return None


def _parse_tier(value: str | None) -> int:
    """Tier 1 (best) to 3; anything unreadable or out of range is tier 3."""
    if not value:
        return 3
    try:
        tier = int(float(str(value).replace(",", ".").strip()))
    except ValueError:
        return 3
    return tier if 1 <= tier <= 3 else 3
