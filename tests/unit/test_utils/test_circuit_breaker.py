"""Tests for the circuit breaker."""

from unittest.mock import patch

from cardsmith.utils.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    get_circuit_breaker,
    reset_global_circuit_breaker,
)


class TestCircuitBreakerStates:
    def test_starts_closed(self):
        breaker = CircuitBreaker()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request()

    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=3)
        for _ in range(3):
            breaker.record_failure(ConnectionError("down"))
        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(failure_threshold=2)
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

    def test_half_open_after_timeout(self):
        breaker = CircuitBreaker(failure_threshold=1, timeout_seconds=10)
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1000.0):
            breaker.record_failure()
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1011.0):
            assert breaker.state == CircuitState.HALF_OPEN

    def test_half_open_admits_single_trial_request(self):
        breaker = CircuitBreaker(failure_threshold=1, timeout_seconds=10)
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1000.0):
            breaker.record_failure()
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1011.0):
            assert breaker.allow_request()
            assert not breaker.allow_request()

    def test_trial_successes_close_circuit(self):
        breaker = CircuitBreaker(failure_threshold=1, success_threshold=2, timeout_seconds=10)
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1000.0):
            breaker.record_failure()
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1011.0):
            breaker.allow_request()
            breaker.record_success()
            breaker.allow_request()
            breaker.record_success()
            assert breaker.state == CircuitState.CLOSED

    def test_failed_trial_reopens(self):
        breaker = CircuitBreaker(failure_threshold=1, timeout_seconds=10)
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1000.0):
            breaker.record_failure()
        with patch("cardsmith.utils.circuit_breaker.time.time", return_value=1011.0):
            breaker.allow_request()
            breaker.record_failure()
            assert breaker.state == CircuitState.OPEN

    def test_disabled_breaker_always_allows(self):
        breaker = CircuitBreaker(failure_threshold=1, enabled=False)
        breaker.record_failure()
        assert breaker.allow_request()

    def test_reset(self):
        breaker = CircuitBreaker(failure_threshold=1)
        breaker.record_failure()
        breaker.reset()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.time_until_half_open() == 0.0

    def test_status_snapshot(self):
        breaker = CircuitBreaker(failure_threshold=4)
        breaker.record_failure()
        status = breaker.get_status()
        assert status["state"] == "closed"
        assert status["failure_count"] == 1
        assert status["failure_threshold"] == 4


class TestGlobalBreaker:
    def test_returns_same_instance(self):
        assert get_circuit_breaker() is get_circuit_breaker()

    def test_first_call_configures(self):
        breaker = get_circuit_breaker(failure_threshold=7)
        assert get_circuit_breaker(failure_threshold=2).failure_threshold == 7
        assert breaker.failure_threshold == 7

    def test_reset_creates_fresh_instance(self):
        first = get_circuit_breaker()
        reset_global_circuit_breaker()
        assert get_circuit_breaker() is not first
