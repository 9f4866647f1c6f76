"""
Billing rate resolution (``allocation_kernel.domain.rates``).

Responsibility
--------------
Resolve the per-unit billing rate for an allocation from a location's
master rate table.  Pure functions over frozen values -- the caller
reads the catalog freshly for every create and passes the result in.

Invariants enforced
-------------------
* An unresolved lookup yields ``Decimal("0")``, never an error.  Whether a
  zero rate is acceptable is the caller's decision.
* Rates are ``Decimal``; float never enters billing arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Mapping

ZERO = Decimal("0")


class BillingBasis(str, Enum):
    """How a process type is billed."""

    CATEGORY = "category"  # rate looked up by sub-category
    FLAT = "flat"          # single flat rate per entry
    NONE = "none"          # not billable


class BillingMode(str, Enum):
    """How the amount is derived from the rate."""

    PER_ENTRY = "per_entry"  # amount = rate
    PER_COUNT = "per_count"  # amount = rate * count


@dataclass(frozen=True)
class RateTable:
    """Effective rate table for one location."""

    category_rates: Mapping[str, Decimal] = field(default_factory=dict)
    flat_rate: Decimal | None = None

    def merged_over(
        self,
        default_category_rates: Mapping[str, Decimal],
        default_flat_rate: Decimal | None,
    ) -> RateTable:
        """Layer this table over client-level defaults; location values win."""
        rates = dict(default_category_rates)
        rates.update(self.category_rates)
        flat = self.flat_rate if self.flat_rate is not None else default_flat_rate
        return RateTable(category_rates=rates, flat_rate=flat)


def resolve_rate(
    process_category: BillingBasis,
    sub_category: str | None,
    rate_table: RateTable,
) -> Decimal:
    """Resolve a rate; returns 0 when nothing matches."""
    if process_category is BillingBasis.FLAT:
        return rate_table.flat_rate if rate_table.flat_rate is not None else ZERO
    if process_category is BillingBasis.CATEGORY:
        key = (sub_category or "").strip()
        if not key:
            return ZERO
        return rate_table.category_rates.get(key, ZERO)
    return ZERO


def compute_billing_amount(rate: Decimal, count: int, mode: BillingMode) -> Decimal:
    if mode is BillingMode.PER_COUNT:
        return rate * count
    return rate
