"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Schedule validation itself lives on the
domain value objects.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from helpdesk.sla.domain import BusinessHoursConfig, DaySchedule, SLAPolicy


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "normal", "high", "urgent"]


# ========== Request DTOs ==========

class BusinessHoursUpdate(BusinessHoursConfig):
    """Request model for replacing a tenant's business hours (validated like the domain object)."""
    is_enabled: bool = Field(..., description="Count only open hours toward deadlines")

    def to_domain(self) -> BusinessHoursConfig:
        return BusinessHoursConfig(is_enabled=self.is_enabled, schedule=self.schedule)


class PolicyUpsert(BaseModel):
    """Request model for creating or replacing the policy of one priority."""
    priority: PriorityStr
    first_response_minutes: int = Field(..., ge=1, description="Business minutes to first response")
    is_active: bool = True

    def to_domain(self, organization_id: str) -> SLAPolicy:
        return SLAPolicy(
            organization_id=organization_id,
            priority=self.priority,
            first_response_minutes=self.first_response_minutes,
            is_active=self.is_active,
        )


class PriorityChange(BaseModel):
    """Ticket hook payload sent after an agent changes priority."""
    priority: PriorityStr


# ========== Response DTOs ==========

class BusinessHoursResponse(BaseModel):
    organization_id: str
    is_enabled: bool
    schedule: List[DaySchedule]

    @classmethod
    def from_domain(cls, organization_id: str, config: BusinessHoursConfig) -> "BusinessHoursResponse":
        return cls(
            organization_id=organization_id,
            is_enabled=config.is_enabled,
            schedule=config.schedule,
        )


class PolicyResponse(BaseModel):
    id: Optional[str] = None
    priority: str
    first_response_minutes: int
    is_active: bool

    @classmethod
    def from_domain(cls, policy: SLAPolicy) -> "PolicyResponse":
        return cls(
            id=policy.id,
            priority=policy.priority,
            first_response_minutes=policy.first_response_minutes,
            is_active=policy.is_active,
        )


class PolicyListResponse(BaseModel):
    items: List[PolicyResponse]


class SweepResponse(BaseModel):
    """Response of the scheduled SLA check."""
    success: bool = True
    warningCount: int
    breachedCount: int

