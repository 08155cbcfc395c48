"""Tests for NetworkRequestPoller cadence, gating and error handling."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.punchout_orchestrator.config import PollingConfig
from src.punchout_orchestrator.poller import (
    NetworkRequestPoller,
    find_auth_success,
    find_catalog_success,
)
from src.shared.errors import TransportError


def _source(*responses) -> AsyncMock:
    """Audit source returning *responses* in order, repeating the last one."""
    responses = list(responses)
    source = AsyncMock()

    async def _get(session_key):
        item = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    source.get_network_requests.side_effect = _get
    return source


class TestFinders:
    def test_first_matching_entry(self, make_entry) -> None:
        entries = [
            make_entry("Auth Service", success=False),
            make_entry("Auth Service", success=True, id="a2"),
            make_entry("Catalog Service", success=True, id="c1"),
        ]
        assert find_auth_success(entries).id == "a2"
        assert find_catalog_success(entries).id == "c1"

    def test_none_when_absent(self, make_entry) -> None:
        assert find_auth_success([make_entry("Mule Service")]) is None
        assert find_catalog_success([]) is None


class TestCadence:
    @pytest.mark.asyncio
    async def test_exhausts_after_max_attempts(self, sleep_recorder) -> None:
        source = _source([])
        poller = NetworkRequestPoller(source, sleep=sleep_recorder)
        result = await poller.poll("S1")
        assert source.get_network_requests.await_count == 10
        assert result.attempts == 10
        assert result.exhausted is True
        assert sleep_recorder.calls == [0.5] + [0.8] * 9

    @pytest.mark.asyncio
    async def test_stops_on_catalog(self, make_entry, sleep_recorder) -> None:
        auth = make_entry("Auth Service")
        catalog = make_entry("Mule Service")
        source = _source([], [auth], [auth, catalog])
        result = await NetworkRequestPoller(source, sleep=sleep_recorder).poll("S1")
        assert source.get_network_requests.await_count == 3
        assert result.catalog_observed is True
        assert result.attempts == 3
        assert sleep_recorder.calls == [0.5, 0.8, 0.8]

    @pytest.mark.asyncio
    async def test_catalog_on_first_attempt(self, make_entry, sleep_recorder) -> None:
        source = _source([make_entry("Auth Service"), make_entry("Catalog Service")])
        result = await NetworkRequestPoller(source, sleep=sleep_recorder).poll("S1")
        assert result.attempts == 1
        assert sleep_recorder.calls == [0.5]

    @pytest.mark.asyncio
    async def test_from_config(self, sleep_recorder) -> None:
        config = PollingConfig(max_attempts=3, interval_ms=250, initial_delay_ms=0)
        poller = NetworkRequestPoller.from_config(_source([]), config, sleep=sleep_recorder)
        await poller.poll("S1")
        assert sleep_recorder.calls == [0.25, 0.25]


class TestGating:
    @pytest.mark.asyncio
    async def test_catalog_without_auth_does_not_count(self, make_entry, sleep_recorder) -> None:
        source = _source([make_entry("Mule Service")])
        poller = NetworkRequestPoller(source, max_attempts=3, sleep=sleep_recorder)
        snapshots = [s async for s in poller.snapshots("S1")]
        assert len(snapshots) == 3
        assert all(s.catalog_entry is None for s in snapshots)
        assert all(not s.auth_observed for s in snapshots)

    @pytest.mark.asyncio
    async def test_failed_auth_not_observed(self, make_entry, sleep_recorder) -> None:
        source = _source([make_entry("Auth Service", success=False)])
        result = await NetworkRequestPoller(source, max_attempts=2, sleep=sleep_recorder).poll("S1")
        assert result.auth_observed is False

    @pytest.mark.asyncio
    async def test_auth_newly_observed_once(self, make_entry, sleep_recorder) -> None:
        auth = make_entry("Auth Service")
        source = _source([], [auth], [auth], [auth])
        poller = NetworkRequestPoller(source, max_attempts=4, sleep=sleep_recorder)
        snapshots = [s async for s in poller.snapshots("S1")]
        assert [s.auth_newly_observed for s in snapshots] == [False, True, False, False]
        assert [s.auth_observed for s in snapshots] == [False, True, True, True]

    @pytest.mark.asyncio
    async def test_auth_stays_observed_if_entries_regress(self, make_entry, sleep_recorder) -> None:
        auth = make_entry("Auth Service")
        source = _source([auth], [], [make_entry("Catalog Service")])
        result = await NetworkRequestPoller(source, max_attempts=3, sleep=sleep_recorder).poll("S1")
        assert result.auth_observed is True
        assert result.catalog_observed is True


class TestFetchErrors:
    @pytest.mark.asyncio
    async def test_errors_do_not_abort(self, make_entry, sleep_recorder) -> None:
        auth = make_entry("Auth Service")
        catalog = make_entry("Mule Service")
        source = _source(TransportError("down"), TransportError("down"), [auth, catalog])
        result = await NetworkRequestPoller(source, sleep=sleep_recorder).poll("S1")
        assert result.catalog_observed is True
        assert result.attempts == 3
        assert result.errors == ["down", "down"]

    @pytest.mark.asyncio
    async def test_error_keeps_previous_entries(self, make_entry, sleep_recorder) -> None:
        auth = make_entry("Auth Service")
        source = _source([auth], TransportError("blip"), [auth])
        poller = NetworkRequestPoller(source, max_attempts=3, sleep=sleep_recorder)
        snapshots = [s async for s in poller.snapshots("S1")]
        assert snapshots[1].error == "blip"
        assert snapshots[1].entries == (auth,)

    @pytest.mark.asyncio
    async def test_every_attempt_failing_exhausts(self, sleep_recorder) -> None:
        source = _source(TransportError("down"))
        result = await NetworkRequestPoller(source, sleep=sleep_recorder).poll("S1")
        assert result.attempts == 10
        assert len(result.errors) == 10
        assert result.entries == []
