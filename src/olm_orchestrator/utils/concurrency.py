"""Cancellation tokens and bounded task groups.

A :class:`CancelToken` is threaded through every long-running installer call.
Poll loops sleep on the token, so cancelling it (explicitly or through its
deadline) wakes them immediately. A :class:`TaskGroup` runs a bounded number
of tasks on a thread pool under one child token; the first failing task
cancels the others and :meth:`TaskGroup.wait` re-raises that first error.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

DEADLINE_EXCEEDED = "deadline exceeded"


class OperationCancelledError(Exception):
    """Raised when work stops because its cancel token was cancelled."""

    def __init__(self, reason: str = "operation cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class CancelToken:
    """Cancellation signal shared by a tree of operations.

    Cancelling a token cancels all of its children. A child inherits the
    earlier of its own deadline and its parent's.
    """

    def __init__(self, timeout: float | None = None, parent: CancelToken | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._children: list[CancelToken] = []
        self._parent = parent

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline

        if parent is not None:
            parent._add_child(self)

    def child(self, timeout: float | None = None) -> CancelToken:
        """Create a token that is cancelled whenever this one is."""
        return CancelToken(timeout=timeout, parent=self)

    def _add_child(self, child: CancelToken) -> None:
        with self._lock:
            reason = self._reason
            if reason is None:
                self._children.append(child)
        if reason is not None:
            child.cancel(reason)

    def detach(self) -> None:
        """Stop following the parent token. Safe to call more than once."""
        parent, self._parent = self._parent, None
        if parent is None:
            return
        with parent._lock:
            if self in parent._children:
                parent._children.remove(self)

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Cancel this token and its children. Only the first reason is kept."""
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            children = list(self._children)
        self._event.set()
        for child in children:
            child.cancel(reason)

    def _check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(DEADLINE_EXCEEDED)

    @property
    def cancelled(self) -> bool:
        self._check_deadline()
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` if the token is cancelled."""
        if self.cancelled:
            raise OperationCancelledError(self._reason or "operation cancelled")

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, waking early on cancellation.

        Returns:
            True if the token is cancelled when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(0.0, seconds))
        return self.cancelled


class TaskGroup:
    """Run tasks on a bounded thread pool with shared cancellation.

    Every task receives the group's token as its first argument and should
    check it before doing any work. The first task to raise cancels the
    token; :meth:`wait` joins all tasks and re-raises that first error.

    Example:
        ```python
        with TaskGroup(limit=2, cancel=token) as group:
            for request in requests:
                group.go(install_one, request)
            results = group.wait()
        ```
    """

    def __init__(
        self,
        limit: int = 1,
        cancel: CancelToken | None = None,
        name: str = "task-group",
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.token = cancel.child() if cancel is not None else CancelToken()
        self._executor = ThreadPoolExecutor(max_workers=limit, thread_name_prefix=name)
        self._futures: list[Future[Any]] = []
        self._lock = threading.Lock()
        self._first_error: BaseException | None = None
        self._log = logger.bind(task_group=name)

    def go(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """Schedule ``fn(token, *args, **kwargs)``."""
        future = self._executor.submit(self._run, fn, *args, **kwargs)
        self._futures.append(future)
        return future

    def _run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            self.token.raise_if_cancelled()
            return fn(self.token, *args, **kwargs)
        except Exception as e:
            with self._lock:
                first = self._first_error is None
                if first:
                    self._first_error = e
            if first:
                self._log.debug("task_failed", error=str(e))
                self.token.cancel(f"sibling task failed: {e}")
            raise

    def wait(self) -> list[Any]:
        """Join every task.

        Returns:
            Task results in submission order.

        Raises:
            The first exception raised by any task.
        """
        wait_futures(self._futures)
        self._close()
        if self._first_error is not None:
            raise self._first_error
        return [f.result() for f in self._futures]

    def __enter__(self) -> TaskGroup:
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        if exc_type is not None:
            self.token.cancel("task group exited with an error")
        self._close()

    def _close(self) -> None:
        self._executor.shutdown(wait=True)
        self.token.detach()
