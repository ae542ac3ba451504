"""
Command Dispatch - Fire-and-forget set-value channel
====================================================
"""

import logging
import queue
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

Setter = Callable[[str, str, int], None]

_STOP = object()


class CommandDispatcher:
    """
    One-way channel for set-value commands.

    In threaded mode every display gets its own daemon worker and queue,
    so commands for one display run in the order they were issued while
    slow displays don't hold up the others. In synchronous mode the setter
    is called inline.

    Failures are logged and dropped; nothing is retried here.
    """

    def __init__(self, setter: Setter, threaded: bool = True):
        """
        Initialize dispatcher.

        Args:
            setter: Function(display_id, code, value) doing the actual write
            threaded: Run commands on per-display worker threads
        """
        self._setter = setter
        self.threaded = threaded
        self._queues: Dict[str, queue.Queue] = {}
        self._workers: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()
        self._stopped = False

    def dispatch(self, display_id: str, code: str, value: int):
        """Issue a set-value command without waiting for it."""
        if self._stopped:
            logger.warning(f"Dispatcher stopped, dropping {code}={value} for {display_id}")
            return
        if not self.threaded:
            self._run(display_id, code, value)
            return
        self._queue_for(display_id).put((code, value))

    def _queue_for(self, display_id: str) -> queue.Queue:
        with self._lock:
            q = self._queues.get(display_id)
            if q is None:
                q = queue.Queue()
                self._queues[display_id] = q
                worker = threading.Thread(
                    target=self._worker,
                    args=(display_id, q),
                    name=f"dispatch-{display_id}",
                    daemon=True,
                )
                self._workers[display_id] = worker
                worker.start()
            return q

    def _worker(self, display_id: str, q: queue.Queue):
        while True:
            item = q.get()
            try:
                if item is _STOP:
                    return
                code, value = item
                self._run(display_id, code, value)
            finally:
                q.task_done()

    def _run(self, display_id: str, code: str, value: int):
        try:
            logger.debug(f"Setting {code}={value} on display {display_id}")
            self._setter(display_id, code, value)
        except Exception as e:
            logger.error(f"Failed to set {code}={value} on display {display_id}: {e}")

    def flush(self, display_id: Optional[str] = None):
        """Block until queued commands have run (all displays, or one)."""
        with self._lock:
            if display_id is None:
                queues = list(self._queues.values())
            elif display_id in self._queues:
                queues = [self._queues[display_id]]
            else:
                queues = []
        for q in queues:
            q.join()

    def stop(self, timeout: float = 2.0):
        """Let workers drain their queues and exit."""
        self._stopped = True
        with self._lock:
            workers = list(self._workers.items())
            for display_id, _ in workers:
                self._queues[display_id].put(_STOP)
        for display_id, worker in workers:
            worker.join(timeout)
            if worker.is_alive():
                logger.warning(f"Dispatch worker for {display_id} did not stop in time")
        logger.debug("Command dispatcher stopped")
