"""
AnalysisTrigger — fire a remote analysis once the user stops typing.

Every ``feed()`` restarts a quiet-period timer; only when the timer expires
is the analysis call made. A result belonging to text that has since been
edited is discarded, so ``on_result`` only ever sees the analysis of the
latest text.

Usage::

    trigger = AnalysisTrigger(client.analyze, form.apply_analysis, delay=0.8)
    # on every keystroke:
    trigger.feed(description, title)
    # on submit:
    await trigger.flush()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from bugboard.core.constants import DEFAULT_ANALYSIS_MIN_CHARS, DEFAULT_DEBOUNCE_SECONDS

logger = structlog.get_logger()

Analyzer = Callable[[str, "str | None"], Awaitable[Any]]


class AnalysisTrigger:
    def __init__(
        self,
        analyze: Analyzer,
        on_result: Callable[[Any], None],
        *,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        min_chars: int = DEFAULT_ANALYSIS_MIN_CHARS,
    ) -> None:
        self._analyze = analyze
        self._on_result = on_result
        self._delay = delay
        self._min_chars = min_chars

        self._generation = 0
        self._timer: asyncio.Task[None] | None = None
        self._pending_args: tuple[str, str | None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

        self.last_result: Any = None
        self.last_error: str = ""

    @property
    def is_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def feed(self, description: str, title: str | None = None) -> None:
        """Record new input and restart the quiet-period timer."""
        self._generation += 1
        self._cancel_timer()

        if len(description.strip()) < self._min_chars:
            self._pending_args = None
            return

        self._pending_args = (description, title)
        generation = self._generation
        self._timer = asyncio.get_running_loop().create_task(self._fire_later(generation))

    async def flush(self) -> None:
        """Run the pending analysis now instead of waiting for the timer."""
        if not self.is_pending or self._pending_args is None:
            return
        args = self._pending_args
        self._pending_args = None
        self._cancel_timer()
        await self._run(self._generation, *args)

    def cancel(self) -> None:
        """Drop any pending analysis and ignore results still in flight."""
        self._generation += 1
        self._pending_args = None
        self._cancel_timer()

    async def wait_idle(self) -> None:
        """Wait for the running timer and every analysis call in flight."""
        if self._timer is not None:
            await asyncio.wait({self._timer})
        while self._inflight:
            await asyncio.wait(set(self._inflight))

    async def aclose(self) -> None:
        self.cancel()
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _fire_later(self, generation: int) -> None:
        await asyncio.sleep(self._delay)
        if self._pending_args is None:
            return
        description, title = self._pending_args
        self._pending_args = None
        # Detach the call from the timer so a later feed() cancels only the wait
        task = asyncio.get_running_loop().create_task(self._run(generation, description, title))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, generation: int, description: str, title: str | None) -> None:
        try:
            result = await self._analyze(description, title)
        except Exception as exc:  # noqa: BLE001
            self.last_error = str(exc)
            logger.warning("analysis_failed", error=str(exc))
            return

        if generation != self._generation:
            logger.debug("analysis_result_stale", generation=generation, latest=self._generation)
            return

        self.last_result = result
        self.last_error = ""
        self._on_result(result)
