"""
One realtime client connection.

Frames are queued synchronously by the hub and written by a per-connection
pump task, so broadcasting never waits on a slow socket and each client sees
frames in the order they were queued.
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from prpulse.logging import get_logger

logger = get_logger("realtime")

Frame = dict[str, Any]
SendFn = Callable[[Frame], Awaitable[None]]


class ClientConnection:
    """
    Transport-agnostic client handle.

    Args:
        send: Coroutine writing one frame to the client (e.g. WebSocket.send_json)
        connection_id: Opaque id; generated when omitted
        queue_size: Outbox bound; frames beyond it are dropped for this client only
    """

    def __init__(
        self,
        send: SendFn,
        connection_id: Optional[str] = None,
        queue_size: int = 256,
    ):
        self.id = connection_id or uuid.uuid4().hex
        self._send = send
        self.outbox: asyncio.Queue[Frame] = asyncio.Queue(maxsize=queue_size)
        self.topics: set[str] = set()
        self.alive = True
        self.dropped = 0
        self._pump_task: Optional[asyncio.Task] = None
        self._on_dead: Optional[Callable[[str], None]] = None

    def enqueue(self, event: str, data: Any) -> bool:
        """Queue a frame without suspending. False if dead or the outbox is full."""
        if not self.alive:
            return False
        try:
            self.outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("realtime_outbox_full", connection_id=self.id, event_name=event)
            return False
        return True

    def start(self, on_dead: Optional[Callable[[str], None]] = None) -> None:
        """Start the pump on the running loop."""
        self._on_dead = on_dead
        if self._pump_task is None:
            self._pump_task = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        while True:
            frame = await self.outbox.get()
            try:
                await self._send(frame)
            except asyncio.CancelledError:
                self.outbox.task_done()
                raise
            except Exception as e:
                self.outbox.task_done()
                logger.info("realtime_send_failed", connection_id=self.id, error=str(e))
                self._mark_dead()
                return
            self.outbox.task_done()

    def _mark_dead(self) -> None:
        self.alive = False
        self._discard_outbox()
        if self._on_dead is not None:
            self._on_dead(self.id)

    def _discard_outbox(self) -> None:
        while not self.outbox.empty():
            self.outbox.get_nowait()
            self.outbox.task_done()

    async def drain(self) -> None:
        """Wait until every queued frame has been sent or discarded."""
        await self.outbox.join()

    def close(self) -> None:
        """Stop delivery. Safe to call more than once."""
        self.alive = False
        self._discard_outbox()
        if self._pump_task is not None and not self._pump_task.done():
            current = asyncio.current_task() if _loop_running() else None
            if current is not self._pump_task:
                self._pump_task.cancel()
        self._pump_task = None

    def __repr__(self) -> str:
        return f"ClientConnection(id={self.id!r}, topics={sorted(self.topics)!r}, alive={self.alive})"


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


__all__ = ["ClientConnection", "Frame", "SendFn"]
