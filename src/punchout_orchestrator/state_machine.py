"""Progress state machine using the ``transitions`` library.

The machine state is the stage currently in progress; the operator-facing
per-stage statuses are derived from it, so stage progression can only
move forward:

    parsing → auth → catalog → complete
        \\        \\        \\
         +--------+--------+--> failed
"""

from __future__ import annotations

import logging
from typing import Any

from transitions.extensions.asyncio import AsyncMachine, AsyncState

from src.punchout_orchestrator.models import (
    STAGE_ORDER,
    AttemptFailure,
    Stage,
    StageStatus,
)

logger = logging.getLogger(__name__)

STATES: list[AsyncState] = [
    AsyncState("parsing"),
    AsyncState("auth"),
    AsyncState("catalog"),
    AsyncState("complete"),
    AsyncState("failed"),
]

TRANSITIONS: list[dict[str, Any]] = [
    {"trigger": "request_parsed", "source": "parsing", "dest": "auth"},
    {"trigger": "auth_observed", "source": "auth", "dest": "catalog"},
    {"trigger": "catalog_observed", "source": "catalog", "dest": "complete"},
    {
        "trigger": "fail",
        "source": ["parsing", "auth", "catalog"],
        "dest": "failed",
        "before": "record_failure",
    },
]

TERMINAL_STATES: frozenset[str] = frozenset({"complete", "failed"})


def create_progress_machine(model: Any, initial_state: str = "parsing") -> AsyncMachine:
    """Create and return an ``AsyncMachine`` bound to *model*.

    Triggers fired from a state that does not accept them are ignored,
    which makes repeated signals (e.g. a second ``auth_observed``) no-ops.

    Args:
        model: The object whose state the machine manages.  Must provide
            the ``record_failure`` callback.
        initial_state: The initial state for the machine.

    Returns:
        Configured ``AsyncMachine`` instance.
    """
    return AsyncMachine(
        model=model,
        states=STATES,
        transitions=TRANSITIONS,
        initial=initial_state,
        auto_transitions=False,
        send_event=True,
        ignore_invalid_triggers=True,
    )


class ProgressTracker:
    """Per-attempt progress model driven by dispatcher and poller signals."""

    def __init__(self) -> None:
        self.state: str = "parsing"
        self.failed_stage: Stage | None = None
        self.failure: AttemptFailure | None = None
        self.machine = create_progress_machine(self)

    async def record_failure(self, event: Any) -> None:
        """``before`` callback of ``fail``: remember which stage failed.

        The stage comes from the failure value; the machine state is only
        used when the value names none.
        """
        failure: AttemptFailure | None = event.kwargs.get("failure")
        self.failure = failure
        if failure is not None and failure.stage is not None:
            self.failed_stage = failure.stage
        else:
            self.failed_stage = Stage(event.transition.source)
        logger.info("Stage '%s' failed", self.failed_stage.value)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def statuses(self) -> dict[Stage, StageStatus]:
        """Derive the status of every stage from the machine state."""
        if self.state == "complete":
            return {stage: StageStatus.SUCCESS for stage in STAGE_ORDER}

        if self.state == "failed":
            pivot, pivot_status = self.failed_stage, StageStatus.ERROR
        else:
            pivot, pivot_status = Stage(self.state), StageStatus.LOADING

        statuses: dict[Stage, StageStatus] = {}
        reached = False
        for stage in STAGE_ORDER:
            if stage == pivot:
                statuses[stage] = pivot_status
                reached = True
            elif reached:
                statuses[stage] = StageStatus.PENDING
            else:
                statuses[stage] = StageStatus.SUCCESS
        return statuses
