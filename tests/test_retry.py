"""Tests for drawagent/providers/retry.py."""

import threading

import pytest
from unittest.mock import MagicMock, patch

from drawagent.errors import ConfigurationError, RunCancelled, TransportError
from drawagent.providers.retry import RetryingCaller


def transient(e):
    return isinstance(e, ConnectionError)


class TestRetryingCaller:

    def test_returns_first_success(self):
        fn = MagicMock(return_value="ok")
        assert RetryingCaller(base_delay=0).call(fn, is_retryable=transient) == "ok"
        assert fn.call_count == 1

    def test_retries_then_succeeds(self):
        fn = MagicMock(side_effect=[ConnectionError("reset"), ConnectionError("reset"), "ok"])
        assert RetryingCaller(max_retries=3, base_delay=0).call(fn, is_retryable=transient) == "ok"
        assert fn.call_count == 3

    def test_exhaustion_raises_transport_error(self):
        fn = MagicMock(side_effect=ConnectionError("down"))
        with pytest.raises(TransportError, match="Failed after 3 attempts") as exc_info:
            RetryingCaller(max_retries=2, base_delay=0).call(fn, is_retryable=transient)
        assert fn.call_count == 3
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_non_retryable_wrapped_immediately(self):
        fn = MagicMock(side_effect=ValueError("bad request"))
        with pytest.raises(TransportError, match="bad request") as exc_info:
            RetryingCaller(max_retries=5, base_delay=0).call(fn, is_retryable=transient)
        assert fn.call_count == 1
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_no_predicate_means_no_retry(self):
        fn = MagicMock(side_effect=ConnectionError("down"))
        with pytest.raises(TransportError):
            RetryingCaller(max_retries=5, base_delay=0).call(fn)
        assert fn.call_count == 1

    def test_zero_retries(self):
        fn = MagicMock(side_effect=ConnectionError("down"))
        with pytest.raises(TransportError):
            RetryingCaller(max_retries=0).call(fn, is_retryable=transient)
        assert fn.call_count == 1

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            RetryingCaller(max_retries=-1)

    def test_backoff_doubles_and_caps(self):
        caller = RetryingCaller(base_delay=1.0, max_delay=5.0)
        assert [caller.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    @patch("drawagent.providers.retry.time.sleep")
    def test_sleeps_between_attempts(self, mock_sleep):
        fn = MagicMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        RetryingCaller(max_retries=3, base_delay=0.5).call(fn, is_retryable=transient)
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]


class TestRetryCancellation:

    def test_cancelled_before_first_attempt(self):
        cancel = threading.Event()
        cancel.set()
        fn = MagicMock(return_value="ok")
        with pytest.raises(RunCancelled):
            RetryingCaller().call(fn, cancel=cancel)
        fn.assert_not_called()

    def test_cancelled_during_backoff(self):
        cancel = threading.Event()

        def fail_and_cancel():
            cancel.set()
            raise ConnectionError("reset")

        with pytest.raises(RunCancelled):
            RetryingCaller(max_retries=3, base_delay=10).call(
                fail_and_cancel, is_retryable=transient, cancel=cancel
            )

    def test_configuration_error_passes_through(self):
        fn = MagicMock(side_effect=ConfigurationError("stop sequences clash"))
        with pytest.raises(ConfigurationError):
            RetryingCaller(max_retries=3, base_delay=0).call(fn, is_retryable=lambda e: True)
        assert fn.call_count == 1

    def test_run_cancelled_not_retried(self):
        fn = MagicMock(side_effect=RunCancelled("stop"))
        with pytest.raises(RunCancelled):
            RetryingCaller(max_retries=3, base_delay=0).call(fn, is_retryable=lambda e: True)
        assert fn.call_count == 1
