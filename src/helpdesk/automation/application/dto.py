"""
Automation Application DTOs
===========================

Data Transfer Objects for the automation API layer.

Pydantic models for request/response validation. Condition trees are
parsed on write so malformed rules never reach storage.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.automation.domain import parse_condition
from helpdesk.core import InvalidConditionException


# ========== Type Aliases for Literals ==========
TriggerStr = Literal["ticket_created", "ticket_replied", "status_changed", "sla_breached"]
PriorityStr = Literal["low", "normal", "high", "urgent"]
SettableStatusStr = Literal["open", "pending", "resolved", "closed"]


# ========== Action DTOs ==========

class TagActionDTO(BaseModel):
    type: Literal["add_tag", "remove_tag"]
    value: str = Field(..., min_length=1, max_length=100)


class SetPriorityActionDTO(BaseModel):
    type: Literal["set_priority"]
    value: PriorityStr


class SetStatusActionDTO(BaseModel):
    type: Literal["set_status"]
    value: SettableStatusStr


class AssignActionDTO(BaseModel):
    type: Literal["assign_to"]
    value: str = Field(..., min_length=1, max_length=255)


ActionDTO = Annotated[
    Union[TagActionDTO, SetPriorityActionDTO, SetStatusActionDTO, AssignActionDTO],
    Field(discriminator="type"),
]


def _validate_conditions(v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if v is not None:
        try:
            parse_condition(v)
        except InvalidConditionException as e:
            raise ValueError(e.message) from e
    return v


# ========== Request DTOs ==========

class AutomationCreate(BaseModel):
    """Request model for creating an automation."""
    name: str = Field(..., min_length=1, description="Automation name")
    description: Optional[str] = None
    trigger: TriggerStr = Field(default="ticket_created", description="Event that runs the rule")
    conditions: Dict[str, Any] = Field(..., description="Condition tree")
    actions: List[ActionDTO] = Field(..., min_length=1, description="Actions applied on match")
    is_active: bool = True
    priority: int = Field(default=0, description="Higher runs first")

    check_conditions = field_validator("conditions")(_validate_conditions)


class AutomationUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    trigger: Optional[TriggerStr] = None
    conditions: Optional[Dict[str, Any]] = None
    actions: Optional[List[ActionDTO]] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    priority: Optional[int] = None

    check_conditions = field_validator("conditions")(_validate_conditions)


class RunAutomationsRequest(BaseModel):
    """Request model for running one trigger's automations against a ticket."""
    trigger: TriggerStr


# ========== Response DTOs ==========

class ActionResponse(BaseModel):
    type: str
    value: str


class AutomationResponse(BaseModel):
    """Response model for a stored automation."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    trigger: str
    conditions: Dict[str, Any]
    actions: List[ActionResponse]
    is_active: bool
    priority: int
    created_at: datetime
    updated_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)


class AutomationListResponse(BaseModel):
    items: List[AutomationResponse]


class RunAutomationsResponse(BaseModel):
    """Actions that matched (and were applied) for the ticket."""
    matched_actions: List[ActionResponse]
