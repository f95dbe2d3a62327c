import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from agent_relay.core.settings import RelaySettings


DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_ORPHAN_MAX_IDLE_SECONDS = 3600.0
DEFAULT_REPORT_RETENTION_SECONDS = 3600.0


class DelegationOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    ORPHANED = "orphaned"


@dataclass
class DelegationRequest:
    id: str
    from_agent: str
    to_agent: str
    work_description: str
    report_expectations: str
    timestamp: float = field(default_factory=time.time)
    conversation_id: Optional[str] = None


@dataclass
class DelegationReport:
    agent_name: str
    report: str
    conversation_id: str
    timestamp: float = field(default_factory=time.time)

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.timestamp


@dataclass
class DelegationStats:
    active: int = 0
    completed: int = 0
    pending: int = 0


@dataclass
class DelegationHistory:
    delegated_to: list = field(default_factory=list)
    delegated_from: list = field(default_factory=list)


StartCallback = Callable[[DelegationRequest], Union[None, Awaitable[None]]]
SettledCallback = Callable[[DelegationRequest, DelegationOutcome], Union[None, Awaitable[None]]]


@dataclass
class DelegationConfig:
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    orphan_max_idle_seconds: float = DEFAULT_ORPHAN_MAX_IDLE_SECONDS
    report_retention_seconds: float = DEFAULT_REPORT_RETENTION_SECONDS
    on_delegation_start: Optional[StartCallback] = None
    on_delegation_settled: Optional[SettledCallback] = None

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.orphan_max_idle_seconds <= 0:
            raise ValueError(
                f"orphan_max_idle_seconds must be > 0, got {self.orphan_max_idle_seconds}"
            )
        if self.report_retention_seconds <= 0:
            raise ValueError(
                f"report_retention_seconds must be > 0, got {self.report_retention_seconds}"
            )

    @classmethod
    def from_settings(cls, settings: Optional["RelaySettings"] = None, **overrides: Any) -> "DelegationConfig":
        """Build a DelegationConfig from RelaySettings (the global settings by default)."""
        if settings is None:
            from agent_relay.core.settings import get_settings

            settings = get_settings()
        values = {
            "timeout_seconds": settings.delegation_timeout_seconds,
            "orphan_max_idle_seconds": settings.orphan_max_idle_seconds,
            "report_retention_seconds": settings.report_retention_seconds,
        }
        values.update(overrides)
        return cls(**values)
