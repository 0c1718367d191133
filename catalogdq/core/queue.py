"""In-process work queue.

InProcessWorkQueue keeps enqueued jobs in FIFO order and hands each one to a
single registered handler exactly once. Jobs run when the owner drains the
queue (the CLI drains right after enqueueing) or immediately on enqueue when
the queue is created with ``eager=True``.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

JobHandler = Callable[[str, str, Any], Any]


class InProcessWorkQueue:
    """WorkQueue that runs jobs in the calling thread.

    Attributes:
        handler: Callable invoked as handler(job_id, project_id, payload)
        eager: Run each job as soon as it is enqueued

    Example:
        >>> seen = []
        >>> queue = InProcessWorkQueue(lambda job_id, project_id, payload: seen.append(job_id))
        >>> queue.enqueue("j1", "p1", {})
        >>> queue.pending
        1
        >>> queue.drain()
        1
        >>> seen
        ['j1']
    """

    def __init__(self, handler: JobHandler | None = None, eager: bool = False):
        self.handler = handler
        self.eager = eager
        self._pending: deque[tuple[str, str, Any]] = deque()
        self._mutex = threading.Lock()

    def set_handler(self, handler: JobHandler) -> None:
        self.handler = handler

    @property
    def pending(self) -> int:
        with self._mutex:
            return len(self._pending)

    def enqueue(self, job_id: str, project_id: str, payload: Any) -> None:
        with self._mutex:
            self._pending.append((job_id, project_id, payload))
        logger.debug("Enqueued job %s for project %s", job_id, project_id)
        if self.eager:
            self.drain()

    def run_next(self) -> bool:
        """Run the oldest pending job. Returns False when none is pending."""
        if self.handler is None:
            raise RuntimeError("No handler registered on the work queue")

        with self._mutex:
            if not self._pending:
                return False
            job_id, project_id, payload = self._pending.popleft()

        logger.debug("Running job %s", job_id)
        self.handler(job_id, project_id, payload)
        return True

    def drain(self) -> int:
        """Run pending jobs until the queue is empty. Returns how many ran."""
        ran = 0
        while self.run_next():
            ran += 1
        return ran
