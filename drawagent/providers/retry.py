"""Bounded retry with exponential backoff around a transport call."""

import logging
import threading
import time
from typing import Callable, Optional, TypeVar

from ..errors import DrawAgentError, RunCancelled, TransportError

logger = logging.getLogger("drawagent.providers")

T = TypeVar("T")


class RetryingCaller:
    """Call a function, retrying transient failures.

    Usage:
        caller = RetryingCaller(max_retries=3, base_delay=1.0)
        response = caller.call(lambda: client.complete(request), is_retryable=is_transient)
    """

    def __init__(self, max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (0-based)."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def call(
        self,
        fn: Callable[[], T],
        is_retryable: Callable[[Exception], bool] = None,
        cancel: Optional[threading.Event] = None,
    ) -> T:
        """Run ``fn`` with up to ``max_retries`` extra attempts.

        Errors that ``is_retryable`` rejects are raised immediately and
        retryable ones once the retries run out, both as a TransportError.
        drawagent errors (cancellation, configuration) pass through unchanged.
        """
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            if cancel is not None and cancel.is_set():
                raise RunCancelled("Cancelled before model call")
            try:
                return fn()
            except DrawAgentError:
                raise
            except Exception as e:
                retryable = bool(is_retryable and is_retryable(e))
                if not retryable:
                    raise TransportError(f"{e}") from e
                if attempt >= attempts - 1:
                    raise TransportError(f"Failed after {attempts} attempts: {e}") from e

                delay = self.delay_for(attempt)
                logger.warning(f"Model call failed ({e}), retry {attempt + 1}/{self.max_retries} in {delay:.1f}s")
                if cancel is None:
                    time.sleep(delay)
                elif cancel.wait(delay):
                    raise RunCancelled("Cancelled during retry backoff") from e
        # Unreachable: the loop either returns or raises
        raise TransportError("Retry loop exited without a result")
