"""
Automation Domain Layer
=======================

Contains:
- Entities: TicketFacts, AutomationAction, AutomationRule
- Condition trees: closed node set (Leaf, AllOf, AnyOf, Negation) and interpreter
- Engine: evaluate_automations

Pure Python; no infrastructure dependencies.
"""

from helpdesk.automation.domain.entities import TicketFacts, AutomationAction, AutomationRule
from helpdesk.automation.domain.conditions import (
    Leaf,
    AllOf,
    AnyOf,
    Negation,
    ConditionNode,
    OPERATORS,
    parse_condition,
    evaluate_condition,
)
from helpdesk.automation.domain.engine import evaluate_automations

__all__ = [
    "TicketFacts",
    "AutomationAction",
    "AutomationRule",
    "Leaf",
    "AllOf",
    "AnyOf",
    "Negation",
    "ConditionNode",
    "OPERATORS",
    "parse_condition",
    "evaluate_condition",
    "evaluate_automations",
]
