"""
Automation Rule Engine
======================

Evaluates tenant rules against a TicketFacts snapshot and collects the
actions of every rule that matches.
"""

from typing import List, Sequence

from helpdesk.automation.domain.conditions import evaluate_condition
from helpdesk.automation.domain.entities import AutomationAction, AutomationRule, TicketFacts


def evaluate_automations(
    facts: TicketFacts,
    rules: Sequence[AutomationRule]
) -> List[AutomationAction]:
    """
    Collect actions from every rule whose conditions hold for `facts`.

    Rules are visited in descending priority (ties keep their given
    order). There is no first-match-wins: all matching rules contribute.

    Args:
        facts: Snapshot of the ticket
        rules: Rules already filtered to one tenant and trigger

    Returns:
        Matched actions, highest-priority rules first
    """
    if not rules:
        return []

    matched: List[AutomationAction] = []
    for rule in sorted(rules, key=lambda r: r.priority, reverse=True):
        if evaluate_condition(rule.conditions, facts):
            matched.extend(rule.actions)
    return matched
