"""Sequential delivery of webhook payloads to the router.

HTTP requests may arrive concurrently, but the mirror state has a single
writer: the endpoint only enqueues, and one worker task awaits each
``EventRouter.handle_event`` to completion before taking the next payload.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from repomirror.router import EventRouter


logger = logging.getLogger(__name__)


class WebhookReceiver:
    """Queue plus single worker feeding payloads to an EventRouter.

    Example:
        >>> receiver = WebhookReceiver(router)
        >>> receiver.start()
        >>> await receiver.submit(payload)
        >>> await receiver.join()
        >>> await receiver.stop()
    """

    def __init__(self, router: EventRouter, max_queue_size: int = 0) -> None:
        self.router = router
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=max_queue_size)
        self._worker: Optional[asyncio.Task] = None
        self.processed = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker task on the running event loop."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="webhook-receiver")
        logger.info("Webhook receiver started")

    async def submit(self, payload: Dict[str, Any]) -> None:
        """Enqueue one payload for processing."""
        await self._queue.put(payload)

    async def join(self) -> None:
        """Wait until every queued payload has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel the worker; payloads still queued are dropped."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info(
            "Webhook receiver stopped",
            extra={"processed": self.processed, "dropped": self._queue.qsize()},
        )

    async def _run(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                await self.router.handle_event(payload)
                self.processed += 1
            except Exception:
                # Merge failures are handled in the router; anything else lands here
                logger.exception("Unhandled error processing webhook event")
            finally:
                self._queue.task_done()
