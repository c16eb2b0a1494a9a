"""
Configuration Module
====================

Application settings and domain constants.

Settings are loaded from environment variables (and ``.env``) using
pydantic-settings. The closed enumerations for ticket category, priority,
status and message role live here so every bounded context validates
against the same values.
"""

from enum import Enum
from functools import lru_cache
from typing import Dict, List, Optional, Type, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from supportdesk.core.exceptions import ValidationException


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="supportdesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/supportdesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    use_in_memory_store: bool = Field(
        default=False,
        description="Keep tickets and agents in process memory instead of PostgreSQL"
    )

    # ========== SLA ==========
    sla_risk_window_hours: float = Field(
        default=4.0,
        description="Hours before the due date at which a ticket counts as at risk",
        gt=0
    )
    sla_sweep_interval_seconds: int = Field(
        default=300,
        description="Seconds between background SLA breach sweeps",
        ge=10
    )

    # ========== Classification ==========
    classifier_backend: str = Field(
        default="keyword",
        description="Ticket classifier implementation (keyword or llm)"
    )
    classifier_timeout_seconds: float = Field(
        default=3.0,
        description="Upper bound on time spent waiting for a classification",
        gt=0
    )
    classification_confidence_threshold: float = Field(
        default=0.6,
        description="Classifications below this confidence are flagged for manual review",
        ge=0.0,
        le=1.0
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    llm_model: str = Field(default="gpt-4o-mini", description="Chat model used for classification")
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints"
    )

    # ========== Notifications ==========
    webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook receiving ticket events (audit, email, integrations)"
    )
    webhook_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for webhook calls",
        ge=0.1,
        le=30
    )
    webhook_max_retries: int = Field(default=3, description="Webhook delivery retries after the first attempt", ge=0, le=10)

    # ========== Agents ==========
    default_agent_max_load: int = Field(
        default=10,
        description="Max concurrent tickets for agents registered without an explicit limit",
        ge=1
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
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
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("classifier_backend")
    @classmethod
    def validate_classifier_backend(cls, v: str) -> str:
        """Ensure classifier backend is known."""
        allowed = {"keyword", "llm"}
        if v not in allowed:
            raise ValueError(f"classifier_backend must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketCategory(str, Enum):
    """Categories a ticket can be routed by."""
    ACCOUNT = "account"
    BILLING = "billing"
    TECHNICAL = "technical"
    GAMEPLAY = "gameplay"
    SECURITY = "security"
    GENERAL = "general"


class TicketPriority(str, Enum):
    """Ticket priority levels."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        """Resolved and closed tickets no longer count against agent capacity."""
        return self in (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class MessageRole(str, Enum):
    """Author role of a conversation message."""
    CUSTOMER = "customer"
    AGENT = "agent"
    SYSTEM = "system"


class SLAState(str, Enum):
    """SLA status states."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BREACHED = "breached"


class TicketEventType(str, Enum):
    """Events published to the notifier."""
    TICKET_CREATED = "ticket.created"
    AGENT_ASSIGNED = "ticket.agent_assigned"
    MESSAGE_ADDED = "ticket.message_added"
    STATUS_CHANGED = "ticket.status_changed"
    SLA_BREACHED = "ticket.sla_breached"


class UpdateActor(str, Enum):
    """Origin of a ticket update."""
    AGENT = "agent"
    ADMIN = "admin"
    AI = "ai"

    @property
    def label(self) -> str:
        return "AI" if self is UpdateActor.AI else self.value.capitalize()


# SLA hours by priority
SLA_HOURS: Dict[TicketPriority, int] = {
    TicketPriority.URGENT: 8,
    TicketPriority.HIGH: 24,
    TicketPriority.MEDIUM: 48,
    TicketPriority.LOW: 72,
}

DEFAULT_CATEGORY = TicketCategory.GENERAL
DEFAULT_PRIORITY = TicketPriority.MEDIUM

NON_TERMINAL_STATUSES = [TicketStatus.OPEN, TicketStatus.IN_PROGRESS]
TERMINAL_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value, field_name: str) -> E:
    """
    Parse a raw value into one of the closed enumerations.

    Raises:
        ValidationException: If the value is not a member of ``enum_cls``
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationException(
            f"Invalid {field_name}: {value!r}",
            {"field": field_name, "value": value, "allowed": allowed}
        )
