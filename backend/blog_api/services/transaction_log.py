"""
Blog API Backend - Transaction Log Sink
========================================

What:  Appends one JSON line per handled post request to an append-only file.
How:   record() serializes the entry and puts it on a bounded asyncio.Queue
       without awaiting; a single background task drains the queue and
       appends each line with aiofiles.
Who:   Fed by TransactionLogRoute (middleware/transaction_log.py); started and
       stopped by the application lifespan.

Failure policy:
    - Queue full (writer stalled): the record is dropped and a warning logged.
    - Append fails (disk full, permission denied): the error is logged and the
      writer moves on to the next record.
    Neither case ever reaches the client response.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

logger = logging.getLogger(__name__)


class TransactionLog:
    """
    Best-effort JSON-lines writer with backpressure.

    Attributes:
        path:     Log file location (created on first append)
        dropped:  Number of records discarded because the queue was full
    """

    def __init__(self, path: str, max_queue_size: int = 1000):
        self.path = Path(path)
        self.dropped = 0
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=max_queue_size)
        self._writer: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        """Records queued but not yet written."""
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the background writer task. Idempotent."""
        if self._writer is None or self._writer.done():
            self._writer = asyncio.create_task(self._run(), name="transaction-log-writer")
            logger.info("Transaction log writing to %s", self.path.resolve())

    def record(self, entry: Dict[str, Any]) -> bool:
        """
        Enqueue an entry for appending.

        Returns:
            True if queued, False if it was dropped.
        """
        line = json.dumps(entry, default=str, ensure_ascii=False)
        try:
            self._queue.put_nowait(line)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Transaction log queue full (%d pending); dropped record for %s",
                self._queue.qsize(),
                entry.get("endpoint"),
            )
            return False
        return True

    async def flush(self) -> None:
        """Wait until every queued record has been handled by the writer."""
        await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        """Drain the queue (bounded by timeout), then cancel the writer."""
        if self._writer is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Transaction log shutdown timed out with %d record(s) unwritten",
                self._queue.qsize(),
            )
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None

    async def _run(self) -> None:
        while True:
            line = await self._queue.get()
            try:
                await self._append(line)
            except Exception as e:
                logger.error("Failed to append transaction log record: %s", str(e))
            finally:
                self._queue.task_done()

    async def _append(self, line: str) -> None:
        async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
            await f.write(line + "\n")
