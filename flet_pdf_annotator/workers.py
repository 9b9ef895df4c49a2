"""
Background execution - handle-owning workers and UI marshalling.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Schedules a callable on the UI context
Post = Callable[[Callable[[], None]], None]


def post_inline(fn: Callable[[], None]) -> None:
    """Default `post`: run the callback on the calling thread."""
    fn()


class HandleWorker:
    """
    A single thread that owns a non-thread-safe resource.

    Callers never touch the resource directly; they send a request and get
    a `Future` back. Requests run one at a time in submission order.

    Args:
        name: Thread name prefix (shows up in logs)
    """

    def __init__(self, name: str = "handle-worker"):
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Queue `fn` and return its future."""
        return self._executor.submit(fn, *args, **kwargs)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Queue `fn` and wait for its result."""
        return self.submit(fn, *args, **kwargs).result()

    def shutdown(self, wait: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.debug("Worker %s stopped", self._name)


def deliver(
    future: "Future[T]",
    post: Post,
    on_result: Optional[Callable[[T], None]] = None,
    on_error: Optional[Callable[[BaseException], None]] = None,
) -> None:
    """
    Hand a future's outcome to the UI context once it completes.

    Exceptions are caught here: they go to `on_error` if given, otherwise
    they are logged.
    """

    def done(f: "Future[T]") -> None:
        error = f.exception()
        if error is not None:
            if on_error is not None:
                post(lambda: on_error(error))
            else:
                logger.error("Background task failed", exc_info=error)
            return
        if on_result is not None:
            result = f.result()
            post(lambda: on_result(result))

    future.add_done_callback(done)
