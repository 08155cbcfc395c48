"""Audit-log polling for a dispatched setup request.

The gateway's downstream calls cannot be observed directly; instead the
backend's network-request log is polled for entries tagged with the
correlation token until the catalog call shows up or the attempt budget
runs out.

Cadence: one pre-delay, then up to ``max_attempts`` fetches separated by
a fixed interval.  The delay after the last attempt is never awaited.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from src.punchout_orchestrator.config import PollingConfig
from src.shared.errors import AppError
from src.shared.models.punchout import AuditEntry

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class AuditLogSource(Protocol):
    """Read-only view of the backend's network-request log."""

    async def get_network_requests(self, session_key: str) -> list[AuditEntry]:
        ...


def find_auth_success(entries: list[AuditEntry]) -> AuditEntry | None:
    """First successful ``Auth Service`` entry, if any."""
    return next((e for e in entries if e.is_auth_success), None)


def find_catalog_success(entries: list[AuditEntry]) -> AuditEntry | None:
    """First successful ``Mule Service`` / ``Catalog Service`` entry, if any."""
    return next((e for e in entries if e.is_catalog_success), None)


@dataclass(frozen=True)
class PollSnapshot:
    """What one poll attempt observed.

    ``entries`` is the latest successfully fetched list; when this
    attempt's fetch failed it is the previous one (possibly empty) and
    ``error`` describes the failure.
    """
    attempt: int
    entries: tuple[AuditEntry, ...]
    auth_observed: bool
    auth_newly_observed: bool
    catalog_entry: AuditEntry | None
    error: str | None = None

    @property
    def catalog_observed(self) -> bool:
        return self.catalog_entry is not None


@dataclass
class PollResult:
    """Aggregate outcome of a complete poll."""
    entries: list[AuditEntry] = field(default_factory=list)
    auth_observed: bool = False
    catalog_entry: AuditEntry | None = None
    attempts: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def catalog_observed(self) -> bool:
        return self.catalog_entry is not None

    @property
    def exhausted(self) -> bool:
        return not self.catalog_observed


class NetworkRequestPoller:
    """Bounded, fixed-cadence poller over an :class:`AuditLogSource`.

    A catalog success only counts once auth success has been observed in
    the same or an earlier snapshot.
    """

    def __init__(
        self,
        source: AuditLogSource,
        max_attempts: int = 10,
        interval: float = 0.8,
        initial_delay: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._source = source
        self.max_attempts = max_attempts
        self.interval = interval
        self.initial_delay = initial_delay
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        source: AuditLogSource,
        config: PollingConfig,
        sleep: Sleep = asyncio.sleep,
    ) -> NetworkRequestPoller:
        return cls(
            source,
            max_attempts=config.max_attempts,
            interval=config.interval_ms / 1000,
            initial_delay=config.initial_delay_ms / 1000,
            sleep=sleep,
        )

    async def snapshots(self, session_key: str) -> AsyncIterator[PollSnapshot]:
        """Yield one :class:`PollSnapshot` per attempt.

        Stops after the first snapshot with a catalog success, or after
        ``max_attempts`` snapshots.  Attempts are strictly sequential.
        """
        entries: list[AuditEntry] = []
        auth_observed = False

        if self.initial_delay > 0:
            await self._sleep(self.initial_delay)

        for attempt in range(1, self.max_attempts + 1):
            error: str | None = None
            try:
                entries = await self._source.get_network_requests(session_key)
            except AppError as exc:
                error = exc.detail
                logger.warning(
                    "Network request fetch %d/%d for %s failed: %s",
                    attempt, self.max_attempts, session_key, exc.detail,
                )

            newly = False
            if not auth_observed and find_auth_success(entries) is not None:
                auth_observed = True
                newly = True

            catalog_entry = find_catalog_success(entries) if auth_observed else None

            yield PollSnapshot(
                attempt=attempt,
                entries=tuple(entries),
                auth_observed=auth_observed,
                auth_newly_observed=newly,
                catalog_entry=catalog_entry,
                error=error,
            )

            if catalog_entry is not None:
                logger.info(
                    "Catalog call observed for %s on attempt %d", session_key, attempt
                )
                return
            if attempt < self.max_attempts:
                await self._sleep(self.interval)

        logger.info(
            "Polling for %s exhausted after %d attempts (auth observed: %s)",
            session_key, self.max_attempts, auth_observed,
        )

    async def poll(self, session_key: str) -> PollResult:
        """Run the full poll and return the aggregate result."""
        result = PollResult()
        async for snapshot in self.snapshots(session_key):
            result.entries = list(snapshot.entries)
            result.auth_observed = snapshot.auth_observed
            result.catalog_entry = snapshot.catalog_entry
            result.attempts = snapshot.attempt
            if snapshot.error:
                result.errors.append(snapshot.error)
        return result
