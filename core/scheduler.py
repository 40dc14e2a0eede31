"""Background execution of generation runs, detached from the triggering request."""

import asyncio
import logging
import threading

logger = logging.getLogger(__name__)


class BackgroundScheduler:
    """Fire-and-forget launcher for async jobs.

    Each job runs on its own event loop in a non-daemon thread, so it keeps
    going after the HTTP request that started it has returned. The
    completion handler runs exactly once per job, with either the result or
    the exception. KeyboardInterrupt and SystemExit are left to propagate.
    """

    def __init__(self):
        self._threads = set()
        self._lock = threading.Lock()

    def launch(self, job, on_done, name=None):
        """Start `job()` (a coroutine factory) without blocking the caller.

        Args:
            job: Zero-argument callable returning a coroutine.
            on_done: Callback(result, error); error is None on success.
            name: Optional thread name for logs.

        Returns:
            The started thread.
        """
        thread = threading.Thread(target=self._run, args=(job, on_done), name=name)
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return thread

    def _run(self, job, on_done):
        try:
            result, error = None, None
            try:
                result = asyncio.run(job())
            except (Exception, asyncio.CancelledError) as e:  # CancelledError is not an Exception
                error = e
            try:
                on_done(result, error)
            except Exception:
                logger.exception("Completion handler failed")
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())

    def active(self):
        """Number of jobs still running."""
        with self._lock:
            return sum(1 for t in self._threads if t.is_alive())

    def join(self, timeout=None):
        """Wait for every launched job to finish (shutdown, tests)."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)
