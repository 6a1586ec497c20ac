"""Background task runner.

Import jobs run in-process on the event loop via ``asyncio.create_task``.
The protocol leaves room for an external queue without touching callers.
"""

import asyncio
import enum
import uuid
from collections.abc import Coroutine
from typing import Any, Protocol

from loguru import logger


class TaskStatus(enum.StrEnum):
    """Status of a background task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> str:
        """Submit a coroutine and return a task id."""
        ...

    def get_status(self, task_id: str) -> TaskStatus:
        """Return the status of a submitted task."""
        ...


class InProcessTaskRunner:
    """Runs submitted coroutines as asyncio tasks in the current process."""

    def __init__(self) -> None:
        self._statuses: dict[str, TaskStatus] = {}
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> str:
        """Schedule ``coro`` on the running loop.

        Args:
            coro: The coroutine to execute.
            name: Label used in log messages.

        Returns:
            A task id for ``get_status``.
        """
        task_id = str(uuid.uuid4())
        label = name or task_id
        self._statuses[task_id] = TaskStatus.PENDING

        async def _run() -> None:
            self._statuses[task_id] = TaskStatus.RUNNING
            try:
                await coro
            except Exception:
                self._statuses[task_id] = TaskStatus.FAILED
                logger.exception(f"Background task {label} failed")
                return
            self._statuses[task_id] = TaskStatus.COMPLETED
            logger.debug(f"Background task {label} completed")

        self._tasks[task_id] = asyncio.create_task(_run(), name=label)
        return task_id

    def get_status(self, task_id: str) -> TaskStatus:
        """Return the status of a submitted task.

        Raises:
            KeyError: If the task id is unknown.
        """
        return self._statuses[task_id]

    async def wait_all(self) -> None:
        """Wait for every submitted task to finish."""
        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending)


# Singleton instance for the application
task_runner = InProcessTaskRunner()
