"""
Client policy table (``allocation_kernel.domain.client_policy``).

Responsibility
--------------
Per-client business rules expressed as DATA: duplicate scope, which
request categories count as primary, what to suggest instead, how the
rate is resolved and how the amount is derived, which process type a
project belongs to, and which fields an edit may touch.  A new client is
added by a new policy row, not by a new conditional.

Architecture position
---------------------
**Kernel domain layer** -- frozen value objects, zero I/O.  Instances are
built by ``allocation_config`` from YAML and injected into services; the
kernel never reads configuration files itself.

Invariants enforced
-------------------
* ``suggested_category`` is never itself a primary category.
* Client lookup is case-insensitive and whitespace-insensitive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping

from allocation_kernel.domain.allocation import EditableField
from allocation_kernel.domain.rates import BillingBasis, BillingMode, RateTable
from allocation_kernel.exceptions import UnknownClientPolicyError


class DuplicateScope(str, Enum):
    """
    How far the "one primary entry per request id" rule reaches.

    The search never leaves the client's duplicate group, which is the
    client alone unless ``duplicate_group`` joins several clients.
    """

    CLIENT = "client"  # only entries logged under the same client name
    NONE = "none"      # any entry in the client's duplicate group


@dataclass(frozen=True)
class ProcessTypeRule:
    """Maps a project name substring to a process type and billing basis."""

    match: str
    process_type: str
    billing_basis: BillingBasis

    def matches(self, project_name: str) -> bool:
        return self.match.lower() in (project_name or "").lower()


@dataclass(frozen=True)
class RequestScope:
    """Everything the duplicate guard needs to search one client's entries."""

    client_names: frozenset[str]  # lowercased; never empty
    primary_categories: frozenset[str]
    suggested_category: str

    def is_primary(self, category: str | None) -> bool:
        return (category or "") in self.primary_categories


@dataclass(frozen=True)
class ClientPolicy:
    client_name: str
    duplicate_scope: DuplicateScope
    primary_categories: frozenset[str]
    suggested_category: str
    request_types: tuple[str, ...]
    billing_mode: BillingMode
    default_process_type: ProcessTypeRule
    rate_category_field: EditableField = EditableField.REQUEST_TYPE
    requestor_types: tuple[str, ...] = ()
    process_type_rules: tuple[ProcessTypeRule, ...] = ()
    default_flat_rate: Decimal | None = None
    default_category_rates: Mapping[str, Decimal] = field(default_factory=dict)
    editable_fields: frozenset[EditableField] = frozenset()
    duplicate_group: str | None = None

    @property
    def group_key(self) -> str:
        return (self.duplicate_group or self.client_name).strip().lower()

    def request_scope(
        self,
        client_name: str | None = None,
        group_clients: Iterable[str] = (),
    ) -> RequestScope:
        """
        Build the duplicate search scope for an entry of ``client_name``.

        ``group_clients`` names the other clients sharing this policy's
        duplicate group; only the ``none`` scope searches them.
        """
        names = {(client_name or self.client_name).strip().lower()}
        if self.duplicate_scope is DuplicateScope.NONE:
            names.add(self.client_name.strip().lower())
            names.update(c.strip().lower() for c in group_clients)
        return RequestScope(
            client_names=frozenset(names),
            primary_categories=self.primary_categories,
            suggested_category=self.suggested_category,
        )

    def process_rule_for(self, project_name: str) -> ProcessTypeRule:
        """First matching rule wins; falls back to the default process type."""
        for rule in self.process_type_rules:
            if rule.matches(project_name):
                return rule
        return self.default_process_type

    def rate_table_for(self, location_rates: RateTable) -> RateTable:
        return location_rates.merged_over(
            self.default_category_rates, self.default_flat_rate
        )

    def allows_request_type(self, request_type: str) -> bool:
        return not self.request_types or request_type in self.request_types

    def allows_requestor_type(self, requestor_type: str) -> bool:
        if not requestor_type:
            return True
        return not self.requestor_types or requestor_type in self.requestor_types

    def allows_edit(self, field_name: EditableField) -> bool:
        # An empty set leaves every EditableField open.
        return not self.editable_fields or field_name in self.editable_fields


@dataclass(frozen=True)
class AllocationPolicySet:
    """The full, immutable policy configuration handed to services."""

    clients: tuple[ClientPolicy, ...]
    business_timezone: str = "America/New_York"
    serial_retry_attempts: int = 3
    delete_request_recipients: tuple[str, ...] = ()
    checksum: str | None = None

    def for_client(self, client_name: str) -> ClientPolicy:
        wanted = (client_name or "").strip().casefold()
        for policy in self.clients:
            if policy.client_name.strip().casefold() == wanted:
                return policy
        raise UnknownClientPolicyError(client_name)

    def request_scope(self, client_name: str) -> RequestScope:
        """Duplicate search scope for an entry of ``client_name``, group members included."""
        policy = self.for_client(client_name)
        members = [
            p.client_name for p in self.clients
            if p is not policy and p.group_key == policy.group_key
        ]
        return policy.request_scope(client_name, members)
