"""Base adapter: inbound handler + serialized outbound delivery queue."""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from gmbridge.events import RelayTask

if TYPE_CHECKING:
    from gmbridge.gateway import Bus, RoutingTable


class AdapterBase(ABC):
    """One platform: relays its inbound messages over the bus and posts tasks bound for it.

    Outbound posts go through a FIFO queue drained by a single consumer, so at
    most one request to the platform is in flight at any time.
    """

    def __init__(
        self,
        bus: Bus,
        router: RoutingTable,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        delay: float = 0.0,
    ) -> None:
        self._bus = bus
        self._router = router
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._delay = delay
        self._queue: asyncio.Queue[RelayTask] = asyncio.Queue()
        self._consumer_task: asyncio.Task | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier ('groupme' or 'slack')."""
        ...

    @abstractmethod
    def post_url(self, task: RelayTask) -> str:
        """Endpoint the task is POSTed to."""
        ...

    @abstractmethod
    def format_payload(self, task: RelayTask) -> dict[str, Any]:
        """Build the platform JSON body for a task."""
        ...

    def is_success(self, response: httpx.Response) -> bool:
        """Whether the platform accepted the post."""
        return response.is_success

    @property
    def pending(self) -> int:
        """Tasks waiting in the queue (not counting one being sent)."""
        return self._queue.qsize()

    def accept_event(self, source: str, evt: object) -> bool:
        """Accept RelayTask targeting this platform."""
        return isinstance(evt, RelayTask) and evt.target == self.name

    def push_event(self, source: str, evt: object) -> None:
        """Queue RelayTask for delivery. Never blocks."""
        if isinstance(evt, RelayTask):
            self._queue.put_nowait(evt)
            logger.debug("{}: queued task from {} ({} pending)", self.name, source, self._queue.qsize())

    def enqueue(self, task: RelayTask) -> None:
        """Append a task to the tail of the delivery queue."""
        self.push_event("direct", task)

    async def deliver(self, task: RelayTask) -> bool:
        """POST one task. Failures are logged and dropped; returns True on success."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        url = self.post_url(task)
        payload = self.format_payload(task)
        try:
            resp = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("{} error: request failed: {}", self.name, exc)
            return False
        if not self.is_success(resp):
            logger.error("{} error: {}", self.name, resp.status_code)
            logger.error("{} response body: {}", self.name, resp.text)
            return False
        logger.debug("{}: delivered message from {}", self.name, task.source_display_name)
        return True

    async def _queue_consumer(self) -> None:
        """Background consumer: pop one task, send it, wait for the result, repeat."""
        while True:
            task = await self._queue.get()
            try:
                await self.deliver(task)
                if self._delay:
                    await asyncio.sleep(self._delay)
            except Exception as exc:
                logger.exception("{} send failed: {}", self.name, exc)
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued task has been processed."""
        await self._queue.join()

    async def start(self) -> None:
        """Start the delivery consumer."""
        if self._consumer_task is None or self._consumer_task.done():
            self._consumer_task = asyncio.create_task(self._queue_consumer())
            logger.info("{} delivery queue started", self.name)

    async def stop(self) -> None:
        """Stop the consumer and close the HTTP client if we created it."""
        if self._consumer_task:
            self._consumer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer_task
            self._consumer_task = None
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._queue.qsize():
            logger.warning("{} stopped with {} undelivered messages", self.name, self._queue.qsize())
