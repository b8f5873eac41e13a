"""
Tests for automation condition trees.

Tests:
- Every operator, aliases and case-insensitive comparison
- Undefined and unknown facts
- all / any / not groups and the shorthand leaf map
- Rejection of malformed trees
"""

import pytest

from helpdesk.automation.domain import (
    AllOf,
    AnyOf,
    Leaf,
    Negation,
    TicketFacts,
    evaluate_condition,
    parse_condition,
)
from helpdesk.core import InvalidConditionException


@pytest.fixture
def facts():
    return TicketFacts(
        sender_email="Jane@Acme.com",
        subject="Refund request for order 42",
        channel="email",
        priority="normal",
        status="open",
        mailbox_email="support@example.com",
        tags=("VIP", "billing"),
    )


def matches(condition, facts) -> bool:
    return evaluate_condition(parse_condition(condition), facts)


def leaf(fact, operator, value):
    return {"fact": fact, "operator": operator, "value": value}


class TestOperators:
    """Leaf operators against a facts snapshot."""

    @pytest.mark.parametrize("condition,expected", [
        (leaf("priority", "equals", "NORMAL"), True),
        (leaf("priority", "equals", "high"), False),
        (leaf("priority", "notEquals", "high"), True),
        (leaf("subject", "contains", "REFUND"), True),
        (leaf("subject", "notContains", "refund"), False),
        (leaf("subject", "notContains", "invoice"), True),
        (leaf("senderEmail", "endsWith", "@acme.com"), True),
        (leaf("sender_email", "beginsWith", "jane@"), True),
        (leaf("subject", "beginsWith", "order"), False),
        (leaf("tags", "arrayContains", "vip"), True),
        (leaf("tags", "arrayContains", "spam"), False),
        (leaf("tags", "arrayNotContains", "spam"), True),
        (leaf("channel", "in", ["web", "EMAIL"]), True),
        (leaf("channel", "notIn", ["web", "api"]), True),
        (leaf("status", "notIn", ["open"]), False),
    ])
    def test_operator(self, facts, condition, expected):
        assert matches(condition, facts) is expected

    @pytest.mark.parametrize("alias", ["equal", "="])
    def test_equals_aliases(self, facts, alias):
        assert matches(leaf("priority", alias, "normal"), facts) is True

    @pytest.mark.parametrize("alias", ["notEqual", "!="])
    def test_not_equals_aliases(self, facts, alias):
        assert matches(leaf("priority", alias, "normal"), facts) is False

    def test_does_not_contain_alias(self, facts):
        assert matches(leaf("subject", "doesNotContain", "invoice"), facts) is True

    def test_parsed_alias_is_canonical(self):
        node = parse_condition(leaf("priority", "=", "high"))
        assert node == Leaf(fact="priority", operator="equals", value="high")

    def test_mailbox_email_alias(self, facts):
        assert matches(leaf("mailboxEmail", "equals", "SUPPORT@example.com"), facts) is True


class TestUndefinedFacts:
    """Leaves on missing values are false, never errors."""

    def test_unknown_fact_is_false(self, facts):
        assert matches(leaf("customerTier", "equals", "gold"), facts) is False

    def test_unknown_fact_negative_operator_is_false(self, facts):
        assert matches(leaf("customerTier", "notEquals", "gold"), facts) is False

    def test_absent_mailbox_is_false(self, facts):
        no_mailbox = TicketFacts(
            sender_email="a@b.com", subject="Hi", channel="web",
            priority="low", status="open",
        )
        assert matches(leaf("mailboxEmail", "contains", "support"), no_mailbox) is False

    def test_type_mismatch_is_false(self, facts):
        assert matches(leaf("tags", "contains", "VIP"), facts) is False
        assert matches(leaf("subject", "arrayContains", "Refund"), facts) is False


class TestGroups:
    """all / any / not composition."""

    def test_all(self, facts):
        condition = {"all": [
            leaf("subject", "contains", "refund"),
            leaf("priority", "equals", "normal"),
        ]}
        assert matches(condition, facts) is True

    def test_all_fails_on_one_false(self, facts):
        condition = {"all": [
            leaf("subject", "contains", "refund"),
            leaf("priority", "equals", "urgent"),
        ]}
        assert matches(condition, facts) is False

    def test_any(self, facts):
        condition = {"any": [
            leaf("priority", "equals", "urgent"),
            leaf("tags", "arrayContains", "billing"),
        ]}
        assert matches(condition, facts) is True

    def test_not(self, facts):
        assert matches({"not": leaf("tags", "arrayContains", "spam")}, facts) is True

    def test_empty_groups(self, facts):
        assert matches({"all": []}, facts) is True
        assert matches({"any": []}, facts) is False

    def test_nested(self, facts):
        condition = {"all": [
            {"any": [
                leaf("channel", "equals", "web"),
                leaf("senderEmail", "endsWith", "acme.com"),
            ]},
            {"not": {"priority": {"equals": "urgent"}}},
        ]}
        node = parse_condition(condition)
        assert isinstance(node, AllOf)
        assert isinstance(node.children[0], AnyOf)
        assert isinstance(node.children[1], Negation)
        assert evaluate_condition(node, facts) is True


class TestShorthand:
    """Shorthand {fact: {operator: value}} leaf maps."""

    def test_single_leaf(self, facts):
        node = parse_condition({"priority": {"equals": "high"}})
        assert node == Leaf(fact="priority", operator="equals", value="high")
        assert evaluate_condition(node, facts) is False

    def test_multiple_entries_are_conjunction(self, facts):
        node = parse_condition({
            "priority": {"equals": "normal"},
            "subject": {"contains": "order"},
        })
        assert isinstance(node, AllOf)
        assert evaluate_condition(node, facts) is True


class TestParseErrors:
    """Malformed trees are rejected at parse time."""

    @pytest.mark.parametrize("condition", [
        {},
        [],
        "priority = high",
        leaf("priority", "matches", "h.*"),
        {"fact": "priority", "value": "high"},
        {"fact": "", "operator": "equals", "value": "x"},
        {"all": leaf("priority", "equals", "high")},
        {"all": [], "any": []},
        {"all": [{"priority": "high"}]},
        {"priority": {}},
    ])
    def test_rejects(self, condition):
        with pytest.raises(InvalidConditionException):
            parse_condition(condition)
