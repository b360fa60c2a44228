"""
Configuration Loader (``charter_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``charter_config.schema`` dataclasses.  Runtime callers go through
``charter_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parse error raises ``ConfigurationError`` naming the offending key.
* Keys absent from the file fall back to the schema defaults.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing file  -> ``ConfigurationError`` (key ``<file>``).
* Malformed YAML  -> ``ConfigurationError`` (key ``<file>``).
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from charter_config.schema import (
    DATE_FORMATS,
    DEFAULT_NUMBER_FORMATS,
    AccountsConfig,
    CharterConfig,
    NumberFormat,
    NumberingConfig,
    WhtConfig,
)
from charter_kernel.domain.currency import CurrencyRegistry
from charter_kernel.domain.documents import DocumentType
from charter_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError("<file>", f"configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError("<file>", f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("<file>", "top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(key, "must be a mapping")
    return value


def _document_type(value: Any, key: str) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError as exc:
        raise ConfigurationError(key, f"unknown document type {value!r}") from exc


def _currency(value: Any, key: str) -> str:
    try:
        return CurrencyRegistry.validate(value)
    except ValueError as exc:
        raise ConfigurationError(key, str(exc)) from exc


def parse_number_format(data: dict[str, Any], key: str, default: NumberFormat) -> NumberFormat:
    fmt = NumberFormat(
        prefix=str(data.get("prefix", default.prefix)),
        date_format=str(data.get("date_format", default.date_format)),
        sequence_digits=data.get("sequence_digits", default.sequence_digits),
        separator=str(data.get("separator", default.separator)),
    )
    if fmt.date_format not in DATE_FORMATS:
        raise ConfigurationError(
            f"{key}.date_format", f"must be one of {', '.join(DATE_FORMATS)}"
        )
    if not isinstance(fmt.sequence_digits, int) or not 1 <= fmt.sequence_digits <= 12:
        raise ConfigurationError(f"{key}.sequence_digits", "must be an integer from 1 to 12")
    return fmt


def parse_numbering(data: dict[str, Any]) -> NumberingConfig:
    formats = dict(DEFAULT_NUMBER_FORMATS)
    raw_formats = _section(data, "formats")
    for type_name, raw in raw_formats.items():
        key = f"numbering.formats.{type_name}"
        doc_type = _document_type(type_name, key)
        if not isinstance(raw, dict):
            raise ConfigurationError(key, "must be a mapping")
        formats[doc_type] = parse_number_format(raw, key, formats[doc_type])

    recycle = data.get("recycle_voided", [t.value for t in DocumentType])
    if not isinstance(recycle, list):
        raise ConfigurationError("numbering.recycle_voided", "must be a list")

    attempts = data.get("max_create_attempts", 3)
    if not isinstance(attempts, int) or attempts < 1:
        raise ConfigurationError("numbering.max_create_attempts", "must be a positive integer")

    return NumberingConfig(
        formats=formats,
        recycle_voided=frozenset(
            _document_type(t, "numbering.recycle_voided") for t in recycle
        ),
        max_create_attempts=attempts,
    )


def parse_accounts(data: dict[str, Any]) -> AccountsConfig:
    defaults = AccountsConfig()
    values = {}
    for name in AccountsConfig.__dataclass_fields__:
        code = data.get(name, getattr(defaults, name))
        if code in (None, ""):
            raise ConfigurationError(f"accounts.{name}", "account code is required")
        values[name] = str(code)
    unknown = set(data) - set(values)
    if unknown:
        raise ConfigurationError(f"accounts.{sorted(unknown)[0]}", "unknown account role")
    return AccountsConfig(**values)


def parse_wht(data: dict[str, Any]) -> WhtConfig:
    defaults = WhtConfig()
    rates = defaults.allowed_rates
    if "allowed_rates" in data:
        try:
            rates = tuple(Decimal(str(r)) for r in data["allowed_rates"])
        except (InvalidOperation, TypeError) as exc:
            raise ConfigurationError("wht.allowed_rates", "rates must be numbers") from exc
        if any(r < 0 or r > 100 for r in rates):
            raise ConfigurationError("wht.allowed_rates", "rates must be between 0 and 100")

    tracked = defaults.tracked_document_types
    if "tracked_document_types" in data:
        tracked = frozenset(
            _document_type(t, "wht.tracked_document_types")
            for t in data["tracked_document_types"] or ()
        )
    return WhtConfig(allowed_rates=rates, tracked_document_types=tracked)


def parse_config(data: dict[str, Any], checksum: str = "") -> CharterConfig:
    """Parse a raw configuration mapping into ``CharterConfig``."""
    base = _currency(data.get("base_currency", "THB"), "base_currency")
    supported = [
        _currency(c, "supported_currencies")
        for c in data.get("supported_currencies", CharterConfig().supported_currencies)
    ]
    if base not in supported:
        supported.insert(0, base)

    return CharterConfig(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        base_currency=base,
        supported_currencies=tuple(supported),
        numbering=parse_numbering(_section(data, "numbering")),
        accounts=parse_accounts(_section(data, "accounts")),
        wht=parse_wht(_section(data, "wht")),
        checksum=checksum,
    )


def load_config_file(path: Path) -> CharterConfig:
    data = load_yaml_file(path)
    return parse_config(data, checksum=compute_checksum(data))
