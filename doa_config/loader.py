"""
Reference Set Loader (``doa_config.loader``).

Responsibility
--------------
Loads the YAML fragments of a reference set directory
(``thresholds.yaml``, ``countries.yaml``, ``settings.yaml``) and parses
them into ``doa_config.schema`` dataclasses.  Runtime callers go through
``doa_config.get_reference_set()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel domain
only through ``doa_config.schema``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* The checksum is computed over the raw fragments, before any parsing,
  so it identifies the files themselves.

Failure modes
-------------
* Missing fragment file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required fields or wrong shapes  -> ``InvalidReferenceDataError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from doa_config.schema import (
    ApproverDef,
    CountryDef,
    ReferenceSet,
    SettingDef,
    ThresholdDef,
)
from doa_kernel.exceptions import InvalidReferenceDataError
from doa_kernel.utils.hashing import hash_payload

THRESHOLDS_FILE = "thresholds.yaml"
COUNTRIES_FILE = "countries.yaml"
SETTINGS_FILE = "settings.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_amount(value: Any) -> Decimal | None:
    """Parse an optional SAR amount; YAML ints and strings are both accepted."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse amount from {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot parse amount from {value!r}") from None


def parse_approver(data: dict[str, Any]) -> ApproverDef:
    return ApproverDef(
        role=str(data["role"]),
        action=str(data["action"]),
        label=data.get("label"),
    )


def parse_threshold(data: dict[str, Any]) -> ThresholdDef:
    """Parse a ``ThresholdDef`` from a dict.

    Raises:
        KeyError: if ``key``, ``type``, ``name`` or ``code`` is missing.
        ValueError: if an amount is not numeric.
    """
    return ThresholdDef(
        key=str(data["key"]),
        type=str(data["type"]),
        name=str(data["name"]),
        code=str(data["code"]),
        notes=data.get("notes"),
        min_value=parse_amount(data.get("min_value")),
        max_value=parse_amount(data.get("max_value")),
        condition=data.get("condition"),
        approvers=tuple(parse_approver(a) for a in data.get("approvers") or ()),
    )


def parse_country(data: dict[str, Any]) -> CountryDef:
    return CountryDef(name=str(data["name"]), risk_level=str(data["risk_level"]))


def parse_settings(data: dict[str, Any]) -> tuple[SettingDef, ...]:
    return tuple(SettingDef(key=str(k), value=v) for k, v in sorted(data.items()))


def load_reference_set(path: Path) -> ReferenceSet:
    """
    Load and parse every fragment of a reference set directory.

    The result is parsed but not validated; see
    ``doa_config.validator.validate_reference_set``.

    Raises:
        FileNotFoundError: if a fragment file is missing.
        InvalidReferenceDataError: if a fragment has the wrong shape.
    """
    path = Path(path)
    raw_thresholds = load_yaml_file(path / THRESHOLDS_FILE).get("thresholds") or []
    raw_countries = load_yaml_file(path / COUNTRIES_FILE).get("countries") or []
    raw_settings = load_yaml_file(path / SETTINGS_FILE).get("settings") or {}

    try:
        thresholds = tuple(parse_threshold(t) for t in raw_thresholds)
        countries = tuple(parse_country(c) for c in raw_countries)
        settings = parse_settings(raw_settings)
    except KeyError as exc:
        raise InvalidReferenceDataError(str(path), [f"missing required field {exc}"]) from exc
    except (TypeError, AttributeError, ValueError) as exc:
        raise InvalidReferenceDataError(str(path), [str(exc)]) from exc

    checksum = hash_payload({
        "thresholds": raw_thresholds,
        "countries": raw_countries,
        "settings": raw_settings,
    })

    return ReferenceSet(
        name=path.name,
        thresholds=thresholds,
        countries=countries,
        settings=settings,
        checksum=checksum,
    )
