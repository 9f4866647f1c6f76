"""Tests for the per-client policy table."""

from dataclasses import replace
from decimal import Decimal

import pytest

from allocation_kernel.domain.allocation import EditableField
from allocation_kernel.domain.client_policy import (
    AllocationPolicySet,
    ClientPolicy,
    DuplicateScope,
    ProcessTypeRule,
)
from allocation_kernel.domain.rates import BillingBasis, BillingMode, RateTable
from allocation_kernel.exceptions import UnknownClientPolicyError


def _mro() -> ClientPolicy:
    return ClientPolicy(
        client_name="MRO",
        duplicate_scope=DuplicateScope.CLIENT,
        primary_categories=frozenset({"New Request"}),
        suggested_category="Follow up",
        request_types=("New Request", "Follow up", "Batch"),
        billing_mode=BillingMode.PER_ENTRY,
        default_process_type=ProcessTypeRule("", "MRO Payer Project", BillingBasis.NONE),
        rate_category_field=EditableField.REQUESTOR_TYPE,
        requestor_types=("Manual", "Processed"),
        process_type_rules=(
            ProcessTypeRule("Processing", "Processing", BillingBasis.CATEGORY),
            ProcessTypeRule("Logging", "Logging", BillingBasis.FLAT),
        ),
        default_flat_rate=Decimal("1.08"),
        default_category_rates={"Processed": Decimal("3.00")},
        editable_fields=frozenset({EditableField.REMARK, EditableField.REQUEST_ID}),
    )


def _verisma() -> ClientPolicy:
    return ClientPolicy(
        client_name="Verisma",
        duplicate_scope=DuplicateScope.NONE,
        primary_categories=frozenset({"New Request"}),
        suggested_category="Duplicate",
        request_types=(),
        billing_mode=BillingMode.PER_COUNT,
        default_process_type=ProcessTypeRule("", "Verisma", BillingBasis.CATEGORY),
    )


class TestRequestScope:
    def test_client_scope_filters_by_client(self):
        scope = _mro().request_scope("MRO")
        assert scope.client_names == {"mro"}
        assert scope.is_primary("New Request")
        assert not scope.is_primary("Follow up")
        assert scope.suggested_category == "Follow up"

    def test_none_scope_stays_within_client(self):
        assert _verisma().request_scope("Verisma").client_names == {"verisma"}

    def test_none_scope_reaches_group_members(self):
        scope = _verisma().request_scope("Verisma", group_clients=["Verisma East "])
        assert scope.client_names == {"verisma", "verisma east"}

    def test_client_scope_ignores_group_members(self):
        scope = _mro().request_scope("MRO", group_clients=["MRO West"])
        assert scope.client_names == {"mro"}

    def test_policy_set_collects_group_members(self):
        east = replace(_verisma(), client_name="Verisma East", duplicate_group="verisma")
        grouped = replace(_verisma(), duplicate_group="Verisma")
        policies = AllocationPolicySet(clients=(_mro(), grouped, east))

        assert policies.request_scope("verisma").client_names == {"verisma", "verisma east"}
        assert policies.request_scope("MRO").client_names == {"mro"}

    def test_ungrouped_clients_never_share_scope(self):
        policies = AllocationPolicySet(clients=(_mro(), _verisma()))
        assert policies.request_scope("Verisma").client_names == {"verisma"}


class TestProcessType:
    @pytest.mark.parametrize(
        ("project", "expected", "basis"),
        [
            ("MRO Processing", "Processing", BillingBasis.CATEGORY),
            ("mro logging east", "Logging", BillingBasis.FLAT),
            ("MRO Payer Project", "MRO Payer Project", BillingBasis.NONE),
        ],
    )
    def test_rule_matching(self, project, expected, basis):
        rule = _mro().process_rule_for(project)
        assert rule.process_type == expected
        assert rule.billing_basis is basis


class TestRateTableFor:
    def test_policy_defaults_fill_gaps(self):
        table = _mro().rate_table_for(RateTable(category_rates={"Manual": Decimal("3.50")}))
        assert table.category_rates["Manual"] == Decimal("3.50")
        assert table.category_rates["Processed"] == Decimal("3.00")
        assert table.flat_rate == Decimal("1.08")


class TestEnumerations:
    def test_request_type_enumeration(self):
        assert _mro().allows_request_type("Batch")
        assert not _mro().allows_request_type("Key")

    def test_empty_enumeration_allows_anything(self):
        assert _verisma().allows_request_type("Anything")

    def test_blank_requestor_type_allowed(self):
        assert _mro().allows_requestor_type("")
        assert not _mro().allows_requestor_type("Bogus")

    def test_editable_fields(self):
        assert _mro().allows_edit(EditableField.REMARK)
        assert not _mro().allows_edit(EditableField.COUNT)
        assert _verisma().allows_edit(EditableField.COUNT)


class TestPolicySet:
    def test_lookup_is_case_and_space_insensitive(self):
        policies = AllocationPolicySet(clients=(_mro(), _verisma()))
        assert policies.for_client("  mro ").client_name == "MRO"

    def test_unknown_client(self):
        policies = AllocationPolicySet(clients=(_mro(),))
        with pytest.raises(UnknownClientPolicyError) as exc_info:
            policies.for_client("Acme")
        assert exc_info.value.client_name == "Acme"
        assert exc_info.value.code == "UNKNOWN_CLIENT_POLICY"
