"""
Configuration loader (``commission_config.loader``).

Loads YAML files and parses them into ``commission_config.schema``
dataclasses.  Callers use ``commission_config.get_active_config()``; this
module is its implementation.

Failure modes:
    * Missing YAML file  -> ``FileNotFoundError`` propagates.
    * Malformed YAML  -> ``yaml.YAMLError`` propagates.
    * Unknown section or key  -> ``ValueError``.
    * Unparseable rate  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from commission_config.schema import (
    CommissionSettings,
    DatabaseSettings,
    JurisdictionSettings,
    OnboardingSettings,
    PlatformConfig,
    SettlementSettings,
)

_SECTIONS = ("commission", "jurisdiction", "onboarding", "settlement", "database")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-wise merge; keys in ``override`` win."""
    merged = {name: dict(section or {}) for name, section in base.items()}
    for name, section in override.items():
        merged.setdefault(name, {}).update(section or {})
    return merged


def _check_keys(section: str, data: dict[str, Any], allowed: type) -> None:
    unknown = set(data) - set(allowed.__dataclass_fields__)
    if unknown:
        raise ValueError(
            f"Unknown key(s) in '{section}': {', '.join(sorted(unknown))}"
        )


def parse_rate(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse commission rate from {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot parse commission rate from {value!r}") from None


def parse_config(data: dict[str, Any], source: str | None = None) -> PlatformConfig:
    """
    Parse a ``PlatformConfig`` from a dict of sections.

    Missing sections and keys fall back to the schema defaults.
    """
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown config section(s): {', '.join(sorted(unknown))}")

    commission = dict(data.get("commission") or {})
    _check_keys("commission", commission, CommissionSettings)
    if "default_rate" in commission:
        commission["default_rate"] = parse_rate(commission["default_rate"])

    jurisdiction = dict(data.get("jurisdiction") or {})
    _check_keys("jurisdiction", jurisdiction, JurisdictionSettings)
    if "split_countries" in jurisdiction:
        jurisdiction["split_countries"] = tuple(
            str(c).upper() for c in jurisdiction["split_countries"] or ()
        )
    if "default_currency" in jurisdiction:
        jurisdiction["default_currency"] = str(jurisdiction["default_currency"]).lower()

    onboarding = dict(data.get("onboarding") or {})
    _check_keys("onboarding", onboarding, OnboardingSettings)

    settlement = dict(data.get("settlement") or {})
    _check_keys("settlement", settlement, SettlementSettings)
    if "pacing_seconds" in settlement:
        settlement["pacing_seconds"] = float(settlement["pacing_seconds"])
        if settlement["pacing_seconds"] < 0:
            raise ValueError("settlement.pacing_seconds must be >= 0")

    database = dict(data.get("database") or {})
    _check_keys("database", database, DatabaseSettings)

    return PlatformConfig(
        commission=CommissionSettings(**commission),
        jurisdiction=JurisdictionSettings(**jurisdiction),
        onboarding=OnboardingSettings(**onboarding),
        settlement=SettlementSettings(**settlement),
        database=DatabaseSettings(**database),
        source=source,
    )
