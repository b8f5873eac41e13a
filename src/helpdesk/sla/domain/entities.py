"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class SLAPolicy:
    """
    First-response target for one (tenant, priority) pair.
    """

    organization_id: str
    priority: str
    first_response_minutes: int
    is_active: bool = True
    id: Optional[str] = None

    def __post_init__(self):
        if self.first_response_minutes <= 0:
            raise ValueError("first_response_minutes must be positive")


@dataclass
class TicketSLASnapshot:
    """
    SLA-relevant view of a ticket, read once per evaluation.

    State machine: unset -> due-set -> [warned] -> breached | answered.
    Answered freezes every other transition.
    """

    id: str
    organization_id: str
    created_at: datetime
    priority: str
    status: str
    subject: Optional[str] = None
    assigned_to_id: Optional[str] = None
    first_response_at: Optional[datetime] = None
    sla_first_response_due_at: Optional[datetime] = None
    sla_warning_notified_at: Optional[datetime] = None
    sla_breached_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_answered(self) -> bool:
        return self.first_response_at is not None

    @property
    def display_subject(self) -> str:
        return self.subject or "(no subject)"


@dataclass
class SLASweepResult:
    """Counts of SLA stamps written by a sweep."""

    warning_count: int = 0
    breached_count: int = 0

    def __add__(self, other: "SLASweepResult") -> "SLASweepResult":
        return SLASweepResult(
            warning_count=self.warning_count + other.warning_count,
            breached_count=self.breached_count + other.breached_count,
        )

    def to_dict(self) -> dict:
        """Convert to the payload returned to the scheduled trigger."""
        return {
            "warningCount": self.warning_count,
            "breachedCount": self.breached_count,
        }
