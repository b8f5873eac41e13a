"""
Automation Condition Trees
==========================

Condition trees are persisted data, never executable code. They are parsed
into a closed set of node types and interpreted against a TicketFacts
snapshot:

    {"all": [node, ...]}                               AND
    {"any": [node, ...]}                               OR
    {"not": node}                                      NOT
    {"fact": "subject", "operator": "contains", "value": "refund"}
    {"priority": {"equals": "high"}}                   shorthand leaf map

All string comparisons are case-insensitive. A fact that is unknown or
undefined makes its leaf false instead of raising.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Tuple, Union

from helpdesk.core import InvalidConditionException
from helpdesk.automation.domain.entities import TicketFacts


def _fold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def _equals(fact: Any, expected: Any) -> bool:
    return _fold(fact) == _fold(expected)


def _contains(fact: Any, expected: Any) -> bool:
    if not isinstance(fact, str) or not isinstance(expected, str):
        return False
    return _fold(expected) in _fold(fact)


def _begins_with(fact: Any, expected: Any) -> bool:
    if not isinstance(fact, str) or not isinstance(expected, str):
        return False
    return _fold(fact).startswith(_fold(expected))


def _ends_with(fact: Any, expected: Any) -> bool:
    if not isinstance(fact, str) or not isinstance(expected, str):
        return False
    return _fold(fact).endswith(_fold(expected))


def _array_contains(fact: Any, expected: Any) -> bool:
    if not isinstance(fact, (list, tuple)):
        return False
    return any(_equals(item, expected) for item in fact)


def _in(fact: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple)):
        return False
    return any(_equals(fact, item) for item in expected)


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "notEquals": lambda fact, expected: not _equals(fact, expected),
    "contains": _contains,
    "notContains": lambda fact, expected: isinstance(fact, str) and not _contains(fact, expected),
    "beginsWith": _begins_with,
    "endsWith": _ends_with,
    "arrayContains": _array_contains,
    "arrayNotContains": lambda fact, expected: (
        isinstance(fact, (list, tuple)) and not _array_contains(fact, expected)
    ),
    "in": _in,
    "notIn": lambda fact, expected: isinstance(expected, (list, tuple)) and not _in(fact, expected),
}

OPERATOR_ALIASES = {
    "equal": "equals",
    "=": "equals",
    "notEqual": "notEquals",
    "!=": "notEquals",
    "doesNotContain": "notContains",
}

_GROUP_KEYS = {"all", "any", "not"}


@dataclass(frozen=True)
class Leaf:
    fact: str
    operator: str
    value: Any


@dataclass(frozen=True)
class AllOf:
    children: Tuple["ConditionNode", ...]


@dataclass(frozen=True)
class AnyOf:
    children: Tuple["ConditionNode", ...]


@dataclass(frozen=True)
class Negation:
    child: "ConditionNode"


ConditionNode = Union[Leaf, AllOf, AnyOf, Negation]


def _normalize_operator(name: Any) -> str:
    if not isinstance(name, str):
        raise InvalidConditionException(f"operator must be a string, got {name!r}")
    canonical = OPERATOR_ALIASES.get(name, name)
    if canonical not in OPERATORS:
        raise InvalidConditionException(f"unknown operator '{name}'")
    return canonical


def _parse_children(raw: Any, key: str) -> Tuple[ConditionNode, ...]:
    if not isinstance(raw, list):
        raise InvalidConditionException(f"'{key}' must hold a list of conditions")
    return tuple(parse_condition(child) for child in raw)


def _parse_leaf_map(data: Mapping[str, Any]) -> ConditionNode:
    leaves = []
    for fact, comparisons in data.items():
        if not isinstance(comparisons, Mapping) or not comparisons:
            raise InvalidConditionException(
                f"fact '{fact}' must map operators to values"
            )
        for operator, value in comparisons.items():
            leaves.append(Leaf(fact=fact, operator=_normalize_operator(operator), value=value))
    if len(leaves) == 1:
        return leaves[0]
    return AllOf(children=tuple(leaves))


def parse_condition(data: Any) -> ConditionNode:
    """
    Parse persisted condition JSON into a node tree.

    Raises:
        InvalidConditionException: If the structure is not a valid tree
    """
    if not isinstance(data, Mapping) or not data:
        raise InvalidConditionException("condition must be a non-empty object")

    group_keys = _GROUP_KEYS.intersection(data)
    if group_keys:
        if len(data) != 1:
            raise InvalidConditionException(
                "a group condition must have exactly one of 'all', 'any' or 'not'"
            )
        if "all" in data:
            return AllOf(children=_parse_children(data["all"], "all"))
        if "any" in data:
            return AnyOf(children=_parse_children(data["any"], "any"))
        return Negation(child=parse_condition(data["not"]))

    if "fact" in data:
        fact = data["fact"]
        if not isinstance(fact, str) or not fact:
            raise InvalidConditionException("leaf 'fact' must be a non-empty string")
        if "operator" not in data:
            raise InvalidConditionException(f"leaf on '{fact}' is missing an operator")
        return Leaf(
            fact=fact,
            operator=_normalize_operator(data["operator"]),
            value=data.get("value"),
        )

    return _parse_leaf_map(data)


def evaluate_condition(node: ConditionNode, facts: TicketFacts) -> bool:
    """Interpret a parsed tree against a facts snapshot."""
    if isinstance(node, Leaf):
        fact_value = facts.get(node.fact)
        if fact_value is None:
            return False
        return OPERATORS[node.operator](fact_value, node.value)
    if isinstance(node, AllOf):
        return all(evaluate_condition(child, facts) for child in node.children)
    if isinstance(node, AnyOf):
        return any(evaluate_condition(child, facts) for child in node.children)
    if isinstance(node, Negation):
        return not evaluate_condition(node.child, facts)
    raise InvalidConditionException(f"unsupported condition node {type(node).__name__}")
