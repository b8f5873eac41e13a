"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Monitor ==========
    sla_sweep_interval: int = Field(
        default=120,
        description="Seconds between in-process SLA sweeps (0 disables the scheduler)",
        ge=0
    )
    sla_warning_threshold: float = Field(
        default=0.75,
        description="Fraction of the first-response window after which a warning fires",
        gt=0.0,
        le=1.0
    )
    cron_secret: Optional[str] = Field(
        default=None,
        description="Shared secret expected as 'Bearer <secret>' by the SLA check endpoint"
    )

    # ========== Push Notifications ==========
    push_url: Optional[str] = Field(
        default=None,
        description="HTTP endpoint that fans notification events out to live clients"
    )
    push_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token for the push endpoint"
    )
    push_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for push API calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketPriority(str):
    """Ticket priority levels."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"
    MERGED = "merged"


class TicketChannel(str):
    """Channels a ticket can arrive through."""
    EMAIL = "email"
    WEB = "web"
    API = "api"


class AutomationTrigger(str):
    """Events that select which automation rules may fire."""
    TICKET_CREATED = "ticket_created"
    TICKET_REPLIED = "ticket_replied"
    STATUS_CHANGED = "status_changed"
    SLA_BREACHED = "sla_breached"


class ActionType(str):
    """Automation action variants."""
    ADD_TAG = "add_tag"
    REMOVE_TAG = "remove_tag"
    SET_PRIORITY = "set_priority"
    SET_STATUS = "set_status"
    ASSIGN_TO = "assign_to"


class NotificationType(str):
    """Notification kinds delivered to agents."""
    SLA_BREACH_WARNING = "sla_breach_warning"


# ========== Lists for validation ==========

VALID_ACTION_TYPES = [
    ActionType.ADD_TAG, ActionType.REMOVE_TAG, ActionType.SET_PRIORITY,
    ActionType.SET_STATUS, ActionType.ASSIGN_TO
]

# Statuses an SLA sweep never touches
CLOSED_STATUSES = [TicketStatus.CLOSED, TicketStatus.MERGED, TicketStatus.RESOLVED]
