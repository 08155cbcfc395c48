"""Shared test fixtures for the PunchOut console test suite."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from src.punchout_orchestrator.config import ConsoleConfig
from src.punchout_orchestrator.models import CustomerContext
from src.shared.models.punchout import AuditEntry, Direction

FIXED_NOW = datetime(2025, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc)


class SleepRecorder:
    """Drop-in for ``asyncio.sleep`` that records durations and returns at once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """A clock frozen at ``FIXED_NOW``."""
    return lambda: FIXED_NOW


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def customer() -> CustomerContext:
    return CustomerContext(
        customer_id="cust-0001-abcd",
        name="Acme Labs",
        domain="acme.example.com",
        buyer_id="buyer_cust-000",
        customer_type="ARIBA",
        onboarding_id="cust-0001-abcd",
    )


@pytest.fixture
def console_config() -> ConsoleConfig:
    return ConsoleConfig()


@pytest.fixture
def make_entry() -> Callable[..., AuditEntry]:
    """Factory for audit entries with sensible defaults."""

    def _make(
        destination: str,
        success: bool = True,
        direction: Direction = Direction.OUTBOUND,
        response_body: str | None = None,
        **extra: Any,
    ) -> AuditEntry:
        return AuditEntry(
            direction=direction,
            destination=destination,
            success=success,
            response_body=response_body,
            session_key=extra.pop("session_key", "SESSION_DEV_cust-0001-abcd_1"),
            **extra,
        )

    return _make
