"""Tests for the cancellable catalog redirect countdown."""
from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from src.punchout_orchestrator.config import RedirectConfig
from src.punchout_orchestrator.redirect import (
    BrowserNavigator,
    NavigationMode,
    RedirectScheduler,
)

URL = "https://catalog.example.com/start?sid=1"


async def _blocking_sleep(seconds: float) -> None:
    await asyncio.Event().wait()


def _scheduler(navigator, sleep, ticks=None, countdown=3) -> RedirectScheduler:
    return RedirectScheduler(
        URL,
        navigator,
        countdown_seconds=countdown,
        tick_interval=1.0,
        on_tick=ticks.append if ticks is not None else None,
        sleep=sleep,
    )


class TestCountdown:
    @pytest.mark.asyncio
    async def test_ticks_then_navigates(self, sleep_recorder) -> None:
        navigator, ticks = MagicMock(), []
        scheduler = _scheduler(navigator, sleep_recorder, ticks)
        scheduler.start()
        mode = await scheduler.wait()
        assert mode is NavigationMode.CURRENT
        assert ticks == [3, 2, 1, 0]
        assert sleep_recorder.calls == [1.0, 1.0, 1.0]
        navigator.open.assert_called_once_with(URL, new_context=False)

    @pytest.mark.asyncio
    async def test_zero_countdown_navigates_immediately(self, sleep_recorder) -> None:
        navigator, ticks = MagicMock(), []
        scheduler = _scheduler(navigator, sleep_recorder, ticks, countdown=0)
        scheduler.start()
        await scheduler.wait()
        assert ticks == [0]
        assert sleep_recorder.calls == []
        assert scheduler.navigated is True

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, sleep_recorder) -> None:
        scheduler = _scheduler(MagicMock(), sleep_recorder)
        assert scheduler.start() is scheduler.start()
        await scheduler.wait()

    @pytest.mark.asyncio
    async def test_wait_without_start(self, sleep_recorder) -> None:
        assert await _scheduler(MagicMock(), sleep_recorder).wait() is None


class TestInterruption:
    @pytest.mark.asyncio
    async def test_navigate_now(self) -> None:
        navigator = MagicMock()
        scheduler = _scheduler(navigator, _blocking_sleep)
        scheduler.start()
        await asyncio.sleep(0)
        assert scheduler.navigate_now() is True
        assert await scheduler.wait() is NavigationMode.CURRENT
        navigator.open.assert_called_once_with(URL, new_context=False)

    @pytest.mark.asyncio
    async def test_open_in_new_context(self) -> None:
        navigator = MagicMock()
        scheduler = _scheduler(navigator, _blocking_sleep)
        scheduler.start()
        await asyncio.sleep(0)
        assert scheduler.open_in_new_context() is True
        assert await scheduler.wait() is NavigationMode.NEW_CONTEXT
        navigator.open.assert_called_once_with(URL, new_context=True)
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_cancel_mid_countdown(self) -> None:
        navigator, ticks = MagicMock(), []
        scheduler = _scheduler(navigator, _blocking_sleep, ticks)
        scheduler.start()
        await asyncio.sleep(0)
        assert ticks == [3]
        scheduler.cancel()
        assert await scheduler.wait() is None
        assert scheduler.cancelled is True
        navigator.open.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_navigation_after_cancel(self) -> None:
        navigator = MagicMock()
        scheduler = _scheduler(navigator, _blocking_sleep)
        scheduler.start()
        scheduler.cancel()
        assert scheduler.navigate_now() is False
        assert scheduler.open_in_new_context() is False
        await scheduler.wait()
        navigator.open.assert_not_called()


class TestAtMostOnce:
    @pytest.mark.asyncio
    async def test_second_navigation_refused(self, sleep_recorder) -> None:
        navigator = MagicMock()
        scheduler = _scheduler(navigator, sleep_recorder)
        scheduler.start()
        await scheduler.wait()
        assert scheduler.navigate_now() is False
        assert scheduler.open_in_new_context() is False
        assert navigator.open.call_count == 1

    @pytest.mark.asyncio
    async def test_cancel_after_navigation_keeps_navigation(self) -> None:
        navigator = MagicMock()
        scheduler = _scheduler(navigator, _blocking_sleep)
        scheduler.start()
        scheduler.open_in_new_context()
        scheduler.cancel()
        assert scheduler.cancelled is False
        assert await scheduler.wait() is NavigationMode.NEW_CONTEXT
        assert navigator.open.call_count == 1


class TestFromConfig:
    def test_uses_config(self) -> None:
        scheduler = RedirectScheduler.from_config(
            URL, MagicMock(), RedirectConfig(countdown_seconds=5, tick_ms=250)
        )
        assert scheduler.countdown_seconds == 5
        assert scheduler.remaining == 5
        assert scheduler.tick_interval == 0.25


class TestBrowserNavigator:
    def test_current_context(self) -> None:
        with patch("src.punchout_orchestrator.redirect.webbrowser") as browser:
            BrowserNavigator().open(URL)
        browser.open.assert_called_once_with(URL, new=0)

    def test_new_context(self) -> None:
        with patch("src.punchout_orchestrator.redirect.webbrowser") as browser:
            BrowserNavigator().open(URL, new_context=True)
        browser.open_new_tab.assert_called_once_with(URL)
