"""
Per-room actor: a mailbox drained by a single worker task.

Everything that touches a room's state is submitted here, so handlers for
one room run one at a time in arrival order while different rooms proceed
concurrently.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class RoomActor:
    """Runs submitted coroutine functions one after another."""

    def __init__(self, name: str):
        self.name = name
        self._mailbox: asyncio.Queue = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._stopping = False

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._run(), name=f"room-actor-{self.name}")

    def submit(self, handler: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Queue a handler and return a future for its result.

        Raises:
            RuntimeError: the actor has been stopped
        """
        if self._stopping:
            raise RuntimeError(f"Room actor {self.name} is stopped")
        self.start()
        future = asyncio.get_running_loop().create_future()
        self._mailbox.put_nowait((handler, future))
        return future

    async def call(self, handler: Callable[[], Awaitable[T]]) -> T:
        """Submit a handler and wait for it to finish."""
        return await self.submit(handler)

    def stop(self) -> None:
        """Let queued handlers finish, then end the worker."""
        if not self._stopping:
            self._stopping = True
            self._mailbox.put_nowait(_STOP)

    async def join(self) -> None:
        if self._worker is not None:
            await self._worker

    async def _run(self) -> None:
        while True:
            item: Any = await self._mailbox.get()
            if item is _STOP:
                break

            handler, future = item
            if future.cancelled():
                continue
            try:
                result = await handler()
            except Exception as e:
                if not future.cancelled():
                    future.set_exception(e)
            else:
                if not future.cancelled():
                    future.set_result(result)

        logger.debug(f"Room actor {self.name} stopped")
