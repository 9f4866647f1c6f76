"""
Policy Loader (``allocation_config.loader``).

Responsibility
--------------
Loads the client policy YAML and parses it into the frozen
``allocation_kernel.domain.client_policy`` dataclasses.  Services never call
this directly; the runtime entry point is
``allocation_config.get_active_policy_set()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys have no silent defaults.
* Money values are parsed through ``str`` into ``Decimal``; a YAML float
  never reaches billing arithmetic as a binary float.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown enum values (scope, basis, mode, field)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from allocation_kernel.domain.allocation import EditableField
from allocation_kernel.domain.client_policy import (
    AllocationPolicySet,
    ClientPolicy,
    DuplicateScope,
    ProcessTypeRule,
)
from allocation_kernel.domain.rates import BillingBasis, BillingMode
from allocation_kernel.domain.temporal import DEFAULT_BUSINESS_TIMEZONE


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, what: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{what}: expected a decimal, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{what}: expected a decimal, got {value!r}") from None


def _parse_rule(data: dict[str, Any]) -> ProcessTypeRule:
    return ProcessTypeRule(
        match=data.get("match", ""),
        process_type=data["process_type"],
        billing_basis=BillingBasis(data["billing_basis"]),
    )


def parse_client_policy(data: dict[str, Any]) -> ClientPolicy:
    """
    Parse one ``clients[]`` entry.

    Required keys: ``client_name``, ``duplicate_scope``,
    ``primary_categories``, ``suggested_category``, ``billing_mode`` and
    ``default_process_type``.
    """
    name = data["client_name"]
    default_flat = data.get("default_flat_rate")
    return ClientPolicy(
        client_name=name,
        duplicate_scope=DuplicateScope(data["duplicate_scope"]),
        primary_categories=frozenset(data["primary_categories"]),
        suggested_category=data["suggested_category"],
        request_types=tuple(data.get("request_types", ())),
        billing_mode=BillingMode(data["billing_mode"]),
        default_process_type=_parse_rule(data["default_process_type"]),
        rate_category_field=EditableField(data.get("rate_category_field", "request_type")),
        requestor_types=tuple(data.get("requestor_types", ())),
        process_type_rules=tuple(_parse_rule(r) for r in data.get("process_types", ())),
        default_flat_rate=(
            parse_decimal(default_flat, f"{name}.default_flat_rate")
            if default_flat is not None
            else None
        ),
        default_category_rates={
            str(category): parse_decimal(rate, f"{name}.default_category_rates.{category}")
            for category, rate in (data.get("default_category_rates") or {}).items()
        },
        editable_fields=frozenset(
            EditableField(f) for f in data.get("editable_fields", ())
        ),
        duplicate_group=data.get("duplicate_group"),
    )


def parse_policy_set(data: dict[str, Any], checksum: str | None = None) -> AllocationPolicySet:
    """Parse the whole policy file.  ``clients`` is required."""
    return AllocationPolicySet(
        clients=tuple(parse_client_policy(c) for c in data["clients"]),
        business_timezone=data.get("business_timezone", DEFAULT_BUSINESS_TIMEZONE),
        serial_retry_attempts=int(data.get("serial_retry_attempts", 3)),
        delete_request_recipients=tuple(data.get("delete_request_recipients", ())),
        checksum=checksum,
    )


@dataclass
class PolicyValidationResult:
    """
    Result of policy set validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty; warnings do
    not block loading.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_policy_set(policy_set: AllocationPolicySet) -> PolicyValidationResult:
    """Structural checks that the dataclasses cannot express on their own."""
    result = PolicyValidationResult()

    try:
        ZoneInfo(policy_set.business_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        result.errors.append(f"Unknown business_timezone {policy_set.business_timezone!r}")

    if policy_set.serial_retry_attempts < 1:
        result.errors.append("serial_retry_attempts must be at least 1")

    if not policy_set.clients:
        result.errors.append("At least one client policy is required")

    seen: set[str] = set()
    for policy in policy_set.clients:
        name = policy.client_name
        key = name.strip().casefold()
        if key in seen:
            result.errors.append(f"Duplicate client policy {name!r}")
        seen.add(key)

        if not policy.primary_categories:
            result.warnings.append(f"{name}: no primary categories; duplicate guard is inert")
        if policy.duplicate_group and policy.duplicate_scope is DuplicateScope.CLIENT:
            result.warnings.append(
                f"{name}: duplicate_group is ignored under duplicate_scope 'client'"
            )
        if policy.suggested_category in policy.primary_categories:
            result.errors.append(
                f"{name}: suggested_category {policy.suggested_category!r} is itself primary"
            )
        if policy.request_types:
            missing = sorted(
                c for c in policy.primary_categories | {policy.suggested_category}
                if c not in policy.request_types
            )
            if missing:
                result.errors.append(f"{name}: categories {missing} are not request types")

        if policy.default_flat_rate is not None and policy.default_flat_rate < 0:
            result.errors.append(f"{name}: default_flat_rate must not be negative")
        for category, rate in policy.default_category_rates.items():
            if rate < 0:
                result.errors.append(f"{name}: rate for {category!r} must not be negative")

        known = (
            policy.requestor_types
            if policy.rate_category_field is EditableField.REQUESTOR_TYPE
            else policy.request_types
        )
        if known:
            for category in policy.default_category_rates:
                if category not in known:
                    result.warnings.append(
                        f"{name}: rate category {category!r} is not a known "
                        f"{policy.rate_category_field.value}"
                    )

    return result


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
