import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    A lightweight helper for spawning and tracking background asyncio tasks.

    This utility centralizes task creation, error reporting, and lifecycle
    management. It ensures that:
    - all spawned tasks are tracked until completion
    - unhandled exceptions inside tasks are logged, cancellations are not
    - completed tasks are automatically removed from the internal registry
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        """Number of spawned tasks that have not completed yet."""
        return len(self._tasks)

    def on_done(self, task: asyncio.Task[Any]) -> None:
        if not task.cancelled() and (ex := task.exception()):
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {str(ex)}",
                exc_info=ex
            )

        self._tasks.discard(task)

    def spawn(
        self,
        coro: Coroutine[Any, Any, None],
        name: str | None = None,
    ) -> asyncio.Task[Any]:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro, name=name)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task

    async def join(self) -> None:
        """
        Wait until every tracked task has completed. Failures and
        cancellations are reported through on_done, never raised here.
        """
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
