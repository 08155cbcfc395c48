"""PunchOut execution orchestrator -- main engine.

Drives one execution attempt end to end:

    synthesize → dispatch → extract token → poll audit log
    → resolve catalog URL → (caller) redirect countdown

:meth:`PunchOutOrchestrator.execute` is an async generator: it yields a
:class:`ProgressEvent` for the initial snapshot and for every stage
transition, then exactly one :class:`ExecutionResult`.  Each attempt owns
its own :class:`ProgressTracker` and poll loop; concurrent attempts share
no state.

Failures are tagged :class:`AttemptFailure` values.  The tracker fails
the stage the value names; it never infers it from which stage happens
to be loading.  Exceptions are charged to the stage being driven when
they were raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from datetime import datetime

from src.punchout_orchestrator.api_client import PunchOutApiClient
from src.punchout_orchestrator.config import ConsoleConfig
from src.punchout_orchestrator.correlation import extract_correlation_token
from src.punchout_orchestrator.dispatcher import SetupRequestDispatcher
from src.punchout_orchestrator.models import (
    AttemptFailure,
    CustomerContext,
    ExecutionAttempt,
    ExecutionResult,
    FailureKind,
    ProgressEvent,
    Stage,
    TemplateOrigin,
)
from src.punchout_orchestrator.poller import NetworkRequestPoller, Sleep
from src.punchout_orchestrator.redirect import (
    Navigator,
    RedirectScheduler,
    TickCallback,
)
from src.punchout_orchestrator.resolver import CatalogUrlResolver
from src.punchout_orchestrator.state_machine import ProgressTracker
from src.punchout_orchestrator.synthesizer import PayloadSynthesizer
from src.shared.errors import AppError
from src.shared.logging import bind_session_key
from src.shared.models.punchout import AuditEntry
from src.shared.utils import utc_now

logger = logging.getLogger(__name__)

AttemptUpdate = ProgressEvent | ExecutionResult
ProgressCallback = Callable[[ProgressEvent], None]


class PunchOutOrchestrator:
    """Runs PunchOut setup attempts against the gateway.

    Collaborators default to instances built from *config* around
    *api_client*; tests inject fakes for any of them.
    """

    def __init__(
        self,
        config: ConsoleConfig,
        api_client: PunchOutApiClient,
        *,
        synthesizer: PayloadSynthesizer | None = None,
        dispatcher: SetupRequestDispatcher | None = None,
        poller: NetworkRequestPoller | None = None,
        resolver: CatalogUrlResolver | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self._api = api_client
        self._clock = clock
        self._sleep = sleep
        self._synthesizer = synthesizer or PayloadSynthesizer(api_client, clock=clock)
        self._dispatcher = dispatcher or SetupRequestDispatcher.from_config(
            config.endpoints, config.dispatch
        )
        self._poller = poller or NetworkRequestPoller.from_config(
            api_client, config.polling, sleep=sleep
        )
        self._resolver = resolver or CatalogUrlResolver(api_client)

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    async def prepare(
        self,
        customer: CustomerContext,
        environment: str,
        payload: str | None = None,
        *,
        tester: str | None = None,
        test_name: str | None = None,
        notes: str | None = None,
    ) -> ExecutionAttempt:
        """Build an :class:`ExecutionAttempt`.

        A fresh setup request is synthesized even when *payload* is given
        (operator-edited text), so the attempt always carries a token;
        the edited text is what gets sent.
        """
        synthesized = await self._synthesizer.synthesize(customer, environment)
        origin = synthesized.template_origin
        if payload is not None:
            origin = TemplateOrigin.CUSTOM
        now = self._clock()
        return ExecutionAttempt(
            customer=customer,
            environment=environment,
            payload=payload if payload is not None else synthesized.payload,
            session_key=synthesized.session_key,
            template_origin=origin,
            test_name=test_name
            or f"{customer.name} - {environment} - {now.date().isoformat()}",
            tester=tester or self.config.recording.default_tester,
            notes=notes,
            created_at=now,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, attempt: ExecutionAttempt) -> AsyncIterator[AttemptUpdate]:
        """Execute *attempt*, yielding progress events then the result."""
        started = time.monotonic()
        tracker = ProgressTracker()
        bind_session_key(None)
        dispatch_status: int | None = None
        raw_response: str | None = None
        session_key: str | None = None
        entries: list[AuditEntry] = []
        notes: list[AttemptFailure] = []
        catalog_url: str | None = None
        driving: Stage | None = Stage.PARSING

        logger.info(
            "Executing PunchOut for %s in %s (attempt %s)",
            attempt.customer.customer_id, attempt.environment, attempt.attempt_id,
        )
        yield self._event(attempt, tracker, "start")

        try:
            outcome = await self._dispatcher.dispatch(attempt.payload)
            dispatch_status = outcome.http_status
            raw_response = outcome.raw_response

            if not outcome.http_ok:
                failure = AttemptFailure(
                    FailureKind.DISPATCH,
                    outcome.error or "Setup request failed",
                    Stage.PARSING,
                )
                await tracker.fail(failure=failure)
                driving = None
                yield self._event(attempt, tracker, "fail", failure)
            else:
                session_key = extract_correlation_token(raw_response)
                if session_key is None:
                    failure = AttemptFailure(
                        FailureKind.CORRELATION,
                        "No BuyerCookie found in the gateway response",
                        Stage.PARSING,
                    )
                    await tracker.fail(failure=failure)
                    driving = None
                    yield self._event(attempt, tracker, "fail", failure)
                else:
                    bind_session_key(session_key)
                    await tracker.request_parsed()
                    driving = Stage.AUTH
                    yield self._event(attempt, tracker, "request_parsed")

                    async for snapshot in self._poller.snapshots(session_key):
                        entries = list(snapshot.entries)
                        if snapshot.error:
                            notes.append(AttemptFailure(FailureKind.POLL, snapshot.error))
                        if snapshot.auth_newly_observed:
                            await tracker.auth_observed()
                            driving = Stage.CATALOG
                            yield self._event(attempt, tracker, "auth_observed")
                        if snapshot.catalog_observed:
                            await tracker.catalog_observed()
                            driving = None
                            yield self._event(attempt, tracker, "catalog_observed")

                    if not tracker.is_terminal:
                        failure = AttemptFailure(
                            FailureKind.POLL_EXHAUSTED,
                            f"Catalog call not observed after "
                            f"{self.config.polling.max_attempts} polls",
                            driving,
                        )
                        if self.config.polling.exhaustion_is_failure:
                            await tracker.fail(failure=failure)
                            driving = None
                            yield self._event(attempt, tracker, "fail", failure)
                        else:
                            notes.append(failure)

                    catalog_url = await self._resolver.resolve(session_key, entries)
                    if catalog_url is None:
                        notes.append(
                            AttemptFailure(
                                FailureKind.RESOLUTION_MISS,
                                "No catalog URL found for the session",
                            )
                        )
        except Exception as exc:
            logger.exception("PunchOut attempt %s failed unexpectedly", attempt.attempt_id)
            failure = AttemptFailure(
                FailureKind.UNEXPECTED,
                str(exc) or type(exc).__name__,
                driving,
            )
            if failure.stage is not None:
                await tracker.fail(failure=failure)
                yield self._event(attempt, tracker, "fail", failure)
            else:
                notes.append(failure)

        failure = tracker.failure
        if failure is None:
            failure = next((n for n in notes if n.kind == FailureKind.UNEXPECTED), None)

        result = ExecutionResult(
            attempt_id=attempt.attempt_id,
            success=failure is None and session_key is not None,
            customer_name=attempt.customer.name,
            environment=attempt.environment,
            stages=tracker.statuses(),
            http_status=dispatch_status,
            session_key=session_key,
            raw_response=raw_response,
            catalog_url=catalog_url,
            network_requests=tuple(entries),
            failure=failure,
            notes=tuple(n for n in notes if n is not failure),
            duration_ms=int((time.monotonic() - started) * 1000),
            timestamp=self._clock(),
        )
        logger.info(
            "PunchOut attempt %s finished: %s (stage states: %s)",
            attempt.attempt_id,
            result.status.value,
            ", ".join(f"{s.value}={st.value}" for s, st in result.stages.items()),
        )

        if self.config.recording.enabled:
            await self._record(attempt, result)

        yield result

    async def run(
        self,
        attempt: ExecutionAttempt,
        on_progress: ProgressCallback | None = None,
    ) -> ExecutionResult:
        """Execute *attempt* and return its result."""
        result: ExecutionResult | None = None
        async for update in self.execute(attempt):
            if isinstance(update, ExecutionResult):
                result = update
            elif on_progress is not None:
                on_progress(update)
        assert result is not None
        return result

    def schedule_redirect(
        self,
        result: ExecutionResult,
        navigator: Navigator,
        on_tick: TickCallback | None = None,
    ) -> RedirectScheduler | None:
        """Start the redirect countdown when *result* carries a catalog URL.

        Must be called from a running event loop.
        """
        if not result.catalog_url or not self.config.redirect.enabled:
            return None
        scheduler = RedirectScheduler.from_config(
            result.catalog_url,
            navigator,
            self.config.redirect,
            on_tick=on_tick,
            sleep=self._sleep,
        )
        scheduler.start()
        return scheduler

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _event(
        self,
        attempt: ExecutionAttempt,
        tracker: ProgressTracker,
        trigger: str,
        failure: AttemptFailure | None = None,
    ) -> ProgressEvent:
        return ProgressEvent(
            attempt_id=attempt.attempt_id,
            state=tracker.state,
            stages=tracker.statuses(),
            trigger=trigger,
            failure=failure,
            timestamp=self._clock(),
        )

    async def _record(self, attempt: ExecutionAttempt, result: ExecutionResult) -> None:
        """Persist *result*; failures are logged and do not affect the outcome."""
        try:
            await self._api.create_test(result.to_test_record(attempt))
        except AppError as exc:
            logger.warning(
                "Could not record test for attempt %s: %s", attempt.attempt_id, exc.detail
            )
        except Exception:
            logger.exception("Could not record test for attempt %s", attempt.attempt_id)
