"""Cancellable, timed redirect to the resolved catalog URL."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

from src.punchout_orchestrator.config import RedirectConfig

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
TickCallback = Callable[[int], None]


class NavigationMode(str, Enum):
    """How the catalog URL was opened."""
    CURRENT = "current"
    NEW_CONTEXT = "new_context"


class Navigator(Protocol):
    """Performs the navigation side effect."""

    def open(self, url: str, new_context: bool = False) -> None:
        ...


class BrowserNavigator:
    """Opens URLs in the operator's default web browser."""

    def open(self, url: str, new_context: bool = False) -> None:
        if new_context:
            webbrowser.open_new_tab(url)
        else:
            webbrowser.open(url, new=0)


class RedirectScheduler:
    """A countdown that navigates to *url* when it reaches zero.

    ``on_tick`` receives the remaining whole seconds: once at start, then
    after every tick down to ``0``.  :meth:`navigate_now` and
    :meth:`open_in_new_context` stop the countdown and navigate at once;
    :meth:`cancel` stops it without navigating.  At most one navigation
    ever happens.
    """

    def __init__(
        self,
        url: str,
        navigator: Navigator,
        countdown_seconds: int = 3,
        tick_interval: float = 1.0,
        on_tick: TickCallback | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.url = url
        self.countdown_seconds = countdown_seconds
        self.tick_interval = tick_interval
        self.remaining = countdown_seconds
        self.navigation: NavigationMode | None = None
        self.cancelled = False
        self._navigator = navigator
        self._on_tick = on_tick
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        url: str,
        navigator: Navigator,
        config: RedirectConfig,
        on_tick: TickCallback | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> RedirectScheduler:
        return cls(
            url,
            navigator,
            countdown_seconds=config.countdown_seconds,
            tick_interval=config.tick_ms / 1000,
            on_tick=on_tick,
            sleep=sleep,
        )

    @property
    def navigated(self) -> bool:
        return self.navigation is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        """Start the countdown on the running event loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._countdown())
        return self._task

    async def wait(self) -> NavigationMode | None:
        """Wait for the countdown to finish or be stopped."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                if not self._task.cancelled():
                    raise
        return self.navigation

    async def _countdown(self) -> None:
        self._tick(self.remaining)
        while self.remaining > 0:
            await self._sleep(self.tick_interval)
            self.remaining -= 1
            self._tick(self.remaining)
        self._navigate(NavigationMode.CURRENT)

    def _tick(self, remaining: int) -> None:
        if self._on_tick is not None:
            self._on_tick(remaining)

    def _stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _navigate(self, mode: NavigationMode) -> bool:
        if self.navigated or self.cancelled:
            return False
        self.navigation = mode
        logger.info("Redirecting to %s (%s)", self.url, mode.value)
        self._navigator.open(self.url, new_context=mode is NavigationMode.NEW_CONTEXT)
        return True

    def navigate_now(self) -> bool:
        """Navigate in the current context immediately."""
        self._stop()
        return self._navigate(NavigationMode.CURRENT)

    def open_in_new_context(self) -> bool:
        """Open the URL in a new context immediately."""
        self._stop()
        return self._navigate(NavigationMode.NEW_CONTEXT)

    def cancel(self) -> None:
        """Stop the countdown without navigating."""
        self._stop()
        if not self.navigated:
            self.cancelled = True
            logger.info("Redirect to %s cancelled", self.url)
