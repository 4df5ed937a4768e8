"""Fixed-interval polling with a deadline."""

from __future__ import annotations

from collections.abc import Callable

import structlog
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from olm_orchestrator.integrations.kubernetes.exceptions import KubernetesTimeoutError
from olm_orchestrator.utils.concurrency import CancelToken, OperationCancelledError

logger = structlog.get_logger()


def poll_until(
    condition: Callable[[], bool],
    *,
    interval: float,
    timeout: float,
    cancel: CancelToken | None = None,
    description: str = "condition",
) -> None:
    """Call ``condition`` until it returns True.

    The first call happens immediately; later calls are ``interval`` seconds
    apart. Sleeps wake as soon as ``cancel`` is cancelled. Exceptions raised
    by ``condition`` abort the poll and propagate unchanged.

    Args:
        condition: Zero-argument callable returning True when done.
        interval: Seconds between calls.
        timeout: Overall budget in seconds.
        cancel: Optional cancellation token.
        description: What is being waited for, used in errors and logs.

    Raises:
        KubernetesTimeoutError: If the budget runs out first.
        OperationCancelledError: If ``cancel`` is cancelled.
    """
    token = cancel if cancel is not None else CancelToken()

    def attempt() -> bool:
        token.raise_if_cancelled()
        return condition()

    retrying = Retrying(
        retry=retry_if_result(lambda done: not done),
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        sleep=token.wait,
    )
    try:
        retrying(attempt)
    except RetryError as e:
        if token.cancelled:
            raise OperationCancelledError(token.reason or "operation cancelled") from e
        logger.debug("poll_timed_out", description=description, timeout=timeout)
        raise KubernetesTimeoutError(
            message=f"Timed out waiting for {description}",
            timeout_seconds=timeout,
        ) from e
