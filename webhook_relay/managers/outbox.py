"""
Per-connection outbound queue.

`Outbox.offer()` is the only write primitive the router uses: it enqueues
without awaiting, so a slow or stalled peer can never hold up delivery to
other peers. A writer task drains the queue to the socket in FIFO order.
"""

import asyncio
import contextlib
from typing import Protocol

from starlette.websockets import WebSocketDisconnect

from webhook_relay.logging import logger
from webhook_relay.utils.metrics import MetricsCollector


class TextTransport(Protocol):
    async def send_text(self, data: str) -> None: ...


class Outbox:
    """
    Bounded FIFO of serialized frames bound to one transport.

    Write failures are logged and counted but never close the outbox: the
    connection is retracted only when its receive loop sees the socket
    close or fail.
    """

    def __init__(self, transport: TextTransport, max_size: int, label: str = ""):
        self.transport = transport
        self.label = label
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_size)
        self._writer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the writer task; must be called from the event loop."""
        if self._writer is None and not self._closed:
            self._writer = asyncio.create_task(
                self._drain(), name=f"outbox-{self.label}"
            )

    def offer(self, frame: str) -> bool:
        """
        Enqueue a frame without waiting.

        Returns:
            True if the frame was accepted, False if the outbox is closed
            or full.
        """
        if self._closed:
            return False
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                f"Outbox {self.label} full ({self._queue.maxsize}), dropping frame"
            )
            return False
        return True

    async def _drain(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                await self.transport.send_text(frame)
                MetricsCollector.record_ws_message_sent()
            except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
                # WebSocketDisconnect: Client disconnected
                # ConnectionError: Network errors
                # RuntimeError: WebSocket in invalid state
                MetricsCollector.record_ws_send_failure()
                logger.warning(f"Failed to send to {self.label}: {e}")
            except Exception as e:
                # Catch-all so one bad write cannot kill the writer task
                MetricsCollector.record_ws_send_failure()
                logger.warning(
                    f"Unexpected error sending to {self.label}: {e}"
                )
            finally:
                self._queue.task_done()

    async def close(self) -> None:
        """Stop accepting frames and cancel the writer. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._writer is not None:
            self._writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None
