"""
allocation_config -- single public entrypoint for client policy configuration.

Responsibility:
    ``get_active_policy_set()`` is the only way services obtain the client
    policy table.  It loads the YAML, validates it, and returns a frozen
    ``AllocationPolicySet`` that callers inject into the lifecycle service.

Architecture position:
    Configuration.  This package imports ``allocation_kernel`` domain types;
    the kernel MUST NEVER import from ``allocation_config``.

Failure modes:
    - ``FileNotFoundError`` when the policy file does not exist.
    - ``yaml.YAMLError`` for malformed YAML.
    - ``KeyError`` / ``ValueError`` for missing keys or validation errors.

Audit relevance:
    Every successful call emits an ``ALLOCATION_CONFIG_TRACE`` log entry
    with the checksum of the source file, tying each logged allocation to
    the policy version that priced it.
"""

from __future__ import annotations

from pathlib import Path

from allocation_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_policy_set,
    validate_policy_set,
)
from allocation_kernel.domain.client_policy import AllocationPolicySet
from allocation_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_POLICY_FILE = Path(__file__).parent / "sets" / "client_policies.yaml"


def get_active_policy_set(config_path: Path | None = None) -> AllocationPolicySet:
    """
    Load, validate and return the client policy set.

    Does not cache; callers hold the returned value for as long as they
    need it.

    Raises:
        FileNotFoundError: If the policy file is missing.
        ValueError: If validation reports errors.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_POLICY_FILE
    data = load_yaml_file(path)
    checksum = compute_checksum(data)
    policy_set = parse_policy_set(data, checksum=checksum)

    validation = validate_policy_set(policy_set)
    if not validation.is_valid:
        raise ValueError(
            "Policy validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("policy_validation_warning", extra={"detail": warning})

    _logger.info(
        "ALLOCATION_CONFIG_TRACE",
        extra={
            "trace_type": "ALLOCATION_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": checksum,
            "business_timezone": policy_set.business_timezone,
            "client_count": len(policy_set.clients),
            "clients": [c.client_name for c in policy_set.clients],
        },
    )
    return policy_set


__all__ = [
    "DEFAULT_POLICY_FILE",
    "get_active_policy_set",
]
