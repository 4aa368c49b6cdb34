"""
Settings Loader (``commission_config.loader``).

Responsibility
--------------
Loads one YAML settings file and parses it into a
``commission_config.schema.CommissionSettings``.  Runtime callers go
through ``commission_config.get_active_settings()`` instead.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Money and rate values are read as ``Decimal`` from their string form;
  a YAML float is converted through ``str`` so 0.1 stays 0.1.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed
  document, recorded on the settings for traceability.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError`` from the schema.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from commission_config.schema import (
    CommissionSettings,
    DrawSettings,
    OutboxSettings,
    OverrideSettings,
    PayRunSettings,
    ProfitSplitSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    return Decimal(str(value))


def _decimals(values: Any) -> tuple[Decimal, ...]:
    return tuple(_decimal(v) for v in (values or ()))


def parse_pay_run(data: dict[str, Any]) -> PayRunSettings:
    return PayRunSettings(
        cutoff_weekday=int(data.get("cutoff_weekday", 1)),
        cutoff_hour=int(data.get("cutoff_hour", 15)),
        cutoff_minute=int(data.get("cutoff_minute", 0)),
        utc_offset_hours=int(data.get("utc_offset_hours", -7)),
    )


def parse_override(data: dict[str, Any]) -> OverrideSettings:
    return OverrideSettings(
        limit=int(data.get("limit", 10)),
        rate=_decimal(data.get("rate", "0.10")),
    )


def parse_draws(data: dict[str, Any]) -> DrawSettings:
    return DrawSettings(
        small_draw_limit=_decimal(data.get("small_draw_limit", "1500")),
        max_outstanding=_decimal(data.get("max_outstanding", "4000")),
        estimate_ratio=_decimal(data.get("estimate_ratio", "0.5")),
    )


def parse_profit_split(data: dict[str, Any]) -> ProfitSplitSettings:
    defaults = ProfitSplitSettings()
    return ProfitSplitSettings(
        op_percent_options=_decimals(data.get("op_percent_options")) or defaults.op_percent_options,
        rep_percent_options=_decimals(data.get("rep_percent_options")) or defaults.rep_percent_options,
    )


def parse_outbox(data: dict[str, Any]) -> OutboxSettings:
    return OutboxSettings(
        max_attempts=int(data.get("max_attempts", 5)),
        base_delay_seconds=int(data.get("base_delay_seconds", 30)),
        max_delay_seconds=int(data.get("max_delay_seconds", 3600)),
        batch_size=int(data.get("batch_size", 100)),
    )


def parse_role_capabilities(data: dict[str, Any]) -> tuple[tuple[str, tuple[str, ...]], ...]:
    return tuple(
        (str(role), tuple(str(c) for c in (capabilities or ())))
        for role, capabilities in sorted(data.items())
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settings(data: dict[str, Any]) -> CommissionSettings:
    return CommissionSettings(
        settings_id=data["settings_id"],
        version=int(data.get("version", 1)),
        pay_run=parse_pay_run(data.get("pay_run") or {}),
        override=parse_override(data.get("override") or {}),
        draws=parse_draws(data.get("draws") or {}),
        profit_split=parse_profit_split(data.get("profit_split") or {}),
        outbox=parse_outbox(data.get("outbox") or {}),
        role_capabilities=parse_role_capabilities(data.get("role_capabilities") or {}),
        manager_submitter_roles=tuple(
            data.get("manager_submitter_roles", ("manager", "sales_manager"))
        ),
        checksum=compute_checksum(data),
    )


def load_settings_file(path: Path) -> CommissionSettings:
    return parse_settings(load_yaml_file(path))
