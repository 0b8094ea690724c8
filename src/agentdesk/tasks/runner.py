"""Background dispatcher for operator notices.

Every task runs on one event loop owned by a daemon thread, so a notice
submitted from inside a short-lived ``asyncio.run`` outlives that loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from agentdesk.config import get_settings

logger = logging.getLogger(__name__)

TaskFunc = Callable[..., Awaitable[Any]]


class TaskRunner:
    """Fire-and-forget dispatcher; failures and cancellations are logged, never raised."""

    def __init__(self, max_concurrent: int | None = None) -> None:
        limit = max_concurrent or int(get_settings().task_runner_max_concurrent)
        self._max_concurrent = max(1, limit)
        self._registry: dict[str, TaskFunc] = {}
        self._pending: set[concurrent.futures.Future[None]] = set()
        self._lock = threading.Lock()
        self._closed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._semaphore: asyncio.Semaphore | None = None

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._pending)

    def register(self, name: str, func: TaskFunc) -> None:
        self._registry[name] = func

    def send_task(self, name: str, kwargs: dict[str, Any] | None = None) -> bool:
        """Queue ``name`` on the background loop; False when it was not accepted."""
        func = self._registry.get(name)
        if func is None:
            logger.error("Unknown task: %s", name)
            return False
        with self._lock:
            if self._closed:
                logger.warning("Task runner is shut down; skipping task %s", name)
                return False
            loop = self._ensure_loop()
            future = asyncio.run_coroutine_threadsafe(
                self._execute(name, func, kwargs or {}), loop
            )
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return True

    def shutdown(self, timeout_s: float | None = None) -> None:
        """Stop accepting tasks, wait up to ``timeout_s`` for queued ones, then stop the loop."""
        if timeout_s is None:
            timeout_s = float(get_settings().task_runner_shutdown_timeout_seconds)
        with self._lock:
            self._closed = True
            pending = list(self._pending)
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if pending:
            _, not_done = concurrent.futures.wait(pending, timeout=max(0.0, timeout_s))
            if not_done:
                logger.warning(
                    "Task runner shutdown timed out; cancelling %d task(s)", len(not_done)
                )
                if loop is not None:
                    self._cancel_remaining(loop)
        if loop is not None and thread is not None:
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=2)
            if not thread.is_alive():
                loop.close()

    def _cancel_remaining(self, loop: asyncio.AbstractEventLoop) -> None:
        async def cancel_all() -> None:
            current = asyncio.current_task()
            tasks = [task for task in asyncio.all_tasks() if task is not current]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        try:
            asyncio.run_coroutine_threadsafe(cancel_all(), loop).result(timeout=2)
        except TimeoutError:
            logger.warning("Cancelled tasks did not finish in time")

    def _forget(self, future: concurrent.futures.Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        loop = asyncio.new_event_loop()
        thread = threading.Thread(
            target=loop.run_forever, name="agentdesk-task-runner", daemon=True
        )
        thread.start()
        self._loop, self._thread = loop, thread
        self._semaphore = None
        return loop

    async def _execute(self, name: str, func: TaskFunc, payload: dict[str, Any]) -> None:
        # Bound on first use so the semaphore belongs to the runner's own loop.
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
        async with self._semaphore:
            try:
                await func(**payload)
            except asyncio.CancelledError:
                logger.warning("Task cancelled: %s", name)
                raise
            except Exception:
                logger.exception("Task failed: %s", name)
