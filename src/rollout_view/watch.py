"""
Watch loop: fetch, render and redraw at a fixed cadence until cancelled.

The fetch call and the sleep share one deadline and one cancellation
event, so a timeout or interrupt ends the loop within a bounded interval
rather than after a hung fetch.
"""

from __future__ import annotations

import io
import logging
import threading
import time
from typing import IO, Callable, Optional

from .config import CLEAR_SCREEN, KUBECTL_TIMEOUT, RenderOptions
from .errors import FetchCancelled, TransientFetchError
from .tree import ResourceSnapshot, TreeRenderer

logger = logging.getLogger(__name__)

# fetch(timeout, cancel): the fetch must give up once cancel is set.
Fetcher = Callable[[Optional[float], threading.Event], ResourceSnapshot]


class WatchLoop:
    """Drives periodic re-fetch and redraw of a resource tree."""

    def __init__(
        self,
        fetch: Fetcher,
        renderer: TreeRenderer,
        options: RenderOptions,
        out: IO[str],
        cancel: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetch = fetch
        self.renderer = renderer
        self.options = options
        self.out = out
        self.cancel = cancel or threading.Event()
        self.clock = clock
        self.deadline: Optional[float] = None
        self.cycles = 0

    def stop(self) -> None:
        """Request the loop to end; safe to call from a signal handler."""
        self.cancel.set()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def fetch_timeout(self) -> float:
        remaining = self.remaining()
        if remaining is None:
            return KUBECTL_TIMEOUT
        return min(remaining, KUBECTL_TIMEOUT)

    def run(self) -> None:
        """
        Render once, or in watch mode repeat until cancelled or timed out.

        Raises:
            FetchError: outside watch mode any fetch failure; in watch mode
                only fatal ones.
        """
        if self.options.timeout_seconds > 0:
            self.deadline = self.clock() + self.options.timeout_seconds
        if not self.options.watch:
            try:
                snapshot = self.fetch(self.fetch_timeout(), self.cancel)
            except FetchCancelled:
                logger.debug("fetch cancelled")
                return
            self.renderer.render(snapshot, self.out)
            self.out.flush()
            self.cycles += 1
            return

        while not self._should_stop():
            self.cycles += 1
            frame = io.StringIO()
            try:
                snapshot = self.fetch(self.fetch_timeout(), self.cancel)
            except FetchCancelled:
                break
            except TransientFetchError as e:
                logger.warning("fetch failed, retrying in %ss: %s", self.options.interval, e)
                frame.write(f"Error: {e}\n")
            else:
                self.renderer.render(snapshot, frame)
            if self.cancel.is_set():
                break
            # One write per frame so the terminal never shows a partial redraw.
            self.out.write(CLEAR_SCREEN + frame.getvalue())
            self.out.flush()
            if self._wait():
                break
        logger.debug("watch loop finished after %d cycles", self.cycles)

    def _should_stop(self) -> bool:
        if self.cancel.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def _wait(self) -> bool:
        """Sleep until the next tick. Returns True when the loop must end."""
        interval = self.options.interval
        remaining = self.remaining()
        if remaining is not None:
            if remaining <= 0:
                return True
            interval = min(interval, remaining)
        return self.cancel.wait(interval)
