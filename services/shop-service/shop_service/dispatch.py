from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Runs best-effort sends on worker threads detached from the request.

    Submitted work keeps running after the request that scheduled it has
    returned. Failures are logged and never re-raised.
    """

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notification"
        )

    def submit(self, description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(lambda done: self._log_outcome(description, done))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_outcome(description: str, future: Future) -> None:
        if future.cancelled():
            logger.warning("Notification %s cancelled before it ran", description)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Notification %s failed: %s", description, exc, exc_info=exc)
        else:
            logger.debug("Notification %s delivered", description)
