"""
Automation Domain Entities
==========================

Facts, actions and rules for ticket automations.
"""

from dataclasses import dataclass, field, fields
from typing import Any, List, Mapping, Optional, Tuple

from helpdesk.config import VALID_ACTION_TYPES


@dataclass(frozen=True)
class TicketFacts:
    """
    Read-only snapshot of ticket attributes presented to the rule engine.

    Built fresh for every evaluation; never persisted.
    """

    sender_email: str
    subject: str
    channel: str
    priority: str
    status: str
    mailbox_email: Optional[str] = None
    tags: Tuple[str, ...] = ()

    # camelCase names used by persisted rule trees
    _ALIASES = {
        "mailboxEmail": "mailbox_email",
        "senderEmail": "sender_email",
    }

    def get(self, name: str) -> Any:
        """Value of a fact by name, or None if the fact is unknown."""
        attr = self._ALIASES.get(name, name)
        if attr not in _FACT_NAMES:
            return None
        return getattr(self, attr)


_FACT_NAMES = frozenset(f.name for f in fields(TicketFacts))


@dataclass(frozen=True)
class AutomationAction:
    """One tagged action variant, e.g. add_tag("vip")."""

    type: str
    value: str

    def __post_init__(self):
        if self.type not in VALID_ACTION_TYPES:
            raise ValueError(f"unknown action type '{self.type}'")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AutomationAction":
        return cls(type=data["type"], value=str(data["value"]))

    def to_dict(self) -> dict:
        return {"type": self.type, "value": self.value}


@dataclass
class AutomationRule:
    """
    A tenant-configured rule ready for evaluation.

    `conditions` holds a parsed tree (see automation.domain.conditions).
    """

    conditions: Any
    actions: List[AutomationAction] = field(default_factory=list)
    priority: int = 0
    id: Optional[str] = None
    name: Optional[str] = None
