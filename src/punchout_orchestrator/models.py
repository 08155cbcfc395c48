"""Data models for a PunchOut execution attempt."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.shared.models.punchout import (
    AuditEntry,
    OnboardingRecord,
    PunchOutTestRecord,
    TestStatus,
)
from src.shared.utils import iso_millis, utc_now


class Stage(str, Enum):
    """Operator-visible progress stages, in order."""
    PARSING = "parsing"
    AUTH = "auth"
    CATALOG = "catalog"
    COMPLETE = "complete"


STAGE_ORDER: list[Stage] = [Stage.PARSING, Stage.AUTH, Stage.CATALOG, Stage.COMPLETE]

STAGE_LABELS: dict[Stage, str] = {
    Stage.PARSING: "Parsing PunchOut Request",
    Stage.AUTH: "Authenticating",
    Stage.CATALOG: "Fetching Catalog",
    Stage.COMPLETE: "Complete",
}


class StageStatus(str, Enum):
    """Status of a single progress stage."""
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class FailureKind(str, Enum):
    """Tagged failure values carried alongside attempt signals."""
    DISPATCH = "dispatch_error"
    CORRELATION = "correlation_error"
    POLL = "poll_error"
    POLL_EXHAUSTED = "poll_exhausted"
    RESOLUTION_MISS = "resolution_miss"
    UNEXPECTED = "unexpected_error"


class TemplateOrigin(str, Enum):
    """Which lookup tier supplied the setup-request template."""
    CUSTOMER = "customer"
    ENVIRONMENT = "environment"
    BUILT_IN = "built_in"
    CUSTOM = "custom"


@dataclass(frozen=True)
class AttemptFailure:
    """A failure observed during an attempt.

    ``stage`` names the stage the failure belongs to; ``None`` for
    failures that do not fail a stage (partial poll errors, resolution
    misses).
    """
    kind: FailureKind
    message: str
    stage: Stage | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage is not None


@dataclass(frozen=True)
class CustomerContext:
    """The customer a PunchOut attempt is executed for."""
    customer_id: str
    name: str
    domain: str
    buyer_id: str
    customer_type: str | None = None
    onboarding_id: str | None = None

    @classmethod
    def from_onboarding(cls, record: OnboardingRecord) -> CustomerContext:
        """Build a customer context from a deployed onboarding record."""
        return cls(
            customer_id=record.id,
            name=record.customer_name,
            domain=record.network,
            buyer_id=f"buyer_{record.id[:8]}",
            customer_type=record.customer_type,
            onboarding_id=record.id,
        )


@dataclass(frozen=True)
class SynthesizedRequest:
    """A rendered setup request and the correlation token embedded in it."""
    payload: str
    session_key: str
    template_origin: TemplateOrigin


@dataclass(frozen=True)
class DispatchOutcome:
    """HTTP outcome of sending the setup request to the gateway."""
    http_ok: bool
    http_status: int | None = None
    raw_response: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ExecutionAttempt:
    """Everything needed to execute one PunchOut attempt.

    Created by :meth:`PunchOutOrchestrator.prepare` and owned by the
    caller; the orchestrator never mutates it.
    """
    customer: CustomerContext
    environment: str
    payload: str
    session_key: str
    template_origin: TemplateOrigin
    test_name: str
    tester: str
    notes: str | None = None
    attempt_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ProgressEvent:
    """A stage transition surfaced to the operator."""
    attempt_id: str
    state: str
    stages: dict[Stage, StageStatus]
    trigger: str
    failure: AttemptFailure | None = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ExecutionResult:
    """Terminal outcome of an attempt.  Immutable once produced."""
    attempt_id: str
    success: bool
    customer_name: str
    environment: str
    stages: dict[Stage, StageStatus]
    http_status: int | None = None
    session_key: str | None = None
    raw_response: str | None = None
    catalog_url: str | None = None
    network_requests: tuple[AuditEntry, ...] = ()
    failure: AttemptFailure | None = None
    notes: tuple[AttemptFailure, ...] = ()
    duration_ms: int = 0
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def error(self) -> str | None:
        return self.failure.message if self.failure else None

    @property
    def status(self) -> TestStatus:
        return TestStatus.SUCCESS if self.success else TestStatus.FAILED

    def to_test_record(self, attempt: ExecutionAttempt) -> PunchOutTestRecord:
        """Build the backend test record for this result."""
        return PunchOutTestRecord(
            test_name=attempt.test_name,
            environment=self.environment,
            tester=attempt.tester,
            test_date=iso_millis(self.timestamp),
            status=self.status,
            session_key=self.session_key,
            catalog_url=self.catalog_url,
            setup_request=attempt.payload,
            setup_response=self.raw_response,
            error_message=self.error,
            total_duration=self.duration_ms,
            notes=attempt.notes,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the result to plain JSON-compatible data."""
        return {
            "attempt_id": self.attempt_id,
            "success": self.success,
            "status": self.status.value,
            "customer": self.customer_name,
            "environment": self.environment,
            "http_status": self.http_status,
            "session_key": self.session_key,
            "catalog_url": self.catalog_url,
            "stages": {stage.value: status.value for stage, status in self.stages.items()},
            "error": self.error,
            "failure_kind": self.failure.kind.value if self.failure else None,
            "notes": [
                {"kind": note.kind.value, "message": note.message} for note in self.notes
            ],
            "network_requests": [
                entry.model_dump(mode="json", by_alias=True, exclude_none=True)
                for entry in self.network_requests
            ],
            "raw_response": self.raw_response,
            "duration_ms": self.duration_ms,
            "timestamp": iso_millis(self.timestamp),
        }
