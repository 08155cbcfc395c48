"""PunchOut execution orchestrator -- synthesize, dispatch, poll, resolve, redirect."""
from src.punchout_orchestrator.config import ConsoleConfig, load_console_config
from src.punchout_orchestrator.models import (
    CustomerContext,
    ExecutionAttempt,
    ExecutionResult,
    ProgressEvent,
    Stage,
    StageStatus,
)
from src.punchout_orchestrator.orchestrator import PunchOutOrchestrator

__all__ = [
    "ConsoleConfig",
    "CustomerContext",
    "ExecutionAttempt",
    "ExecutionResult",
    "ProgressEvent",
    "PunchOutOrchestrator",
    "Stage",
    "StageStatus",
    "load_console_config",
]
