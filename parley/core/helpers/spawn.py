import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    A lightweight helper for spawning and tracking background asyncio tasks.

    It ensures that:
    - all spawned tasks are tracked until completion
    - unhandled exceptions inside tasks are logged
    - completed tasks are automatically removed from the internal registry
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        """Return the number of tasks that have not completed yet."""
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
        """
        Spawn a coroutine as a background task and track its lifecycle.
        """
        task = self._loop.create_task(coro, name=name)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task
