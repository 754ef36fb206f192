"""
Tests for the conflict retry engine and backoff delay calculation.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, call, patch

from commerce_shared.errors import ConflictError, HttpStatusError, TransportError, ValidationError
from commerce_shared.retry import RetryConfig, calculate_delay, retry_conflicts, retry_on_conflict


class TestCalculateDelay:
    """Test cases for calculate_delay."""

    def test_zero_without_config(self):
        assert calculate_delay(1, None) == 0
        assert calculate_delay(7) == 0

    def test_zero_for_retry_count_zero(self):
        assert calculate_delay(0, RetryConfig(delay_ms=50, jitter=False)) == 0
        assert calculate_delay(0, RetryConfig(delay_ms=50, jitter=True)) == 0

    @pytest.mark.parametrize("retry_count,expected", [(1, 500), (2, 1000), (3, 2000), (4, 4000)])
    def test_exponential_without_jitter(self, retry_count, expected):
        config = RetryConfig(delay_ms=500, jitter=False)
        assert calculate_delay(retry_count, config) == expected

    def test_jitter_uses_widened_upper_bound(self):
        """Retry 1 widens by 1 + 1/2, so a draw of 0.5 lands on 0.75 * delay."""
        config = RetryConfig(delay_ms=100, jitter=True)
        with patch("commerce_shared.retry.random.random", return_value=0.5):
            assert calculate_delay(1, config) == 75

        # Retry 3: 400 * (1 + 1/4) = 500
        with patch("commerce_shared.retry.random.random", return_value=0.999):
            assert calculate_delay(3, config) == 499

    def test_jitter_floors_result(self):
        config = RetryConfig(delay_ms=10, jitter=True)
        with patch("commerce_shared.retry.random.random", return_value=0.1):
            # 10 * 1.5 * 0.1 = 1.5
            assert calculate_delay(1, config) == 1

    def test_jitter_stays_within_bounds(self):
        config = RetryConfig(delay_ms=50, jitter=True)
        results = [calculate_delay(2, config) for _ in range(200)]

        # 50 * 2 * (1 + 1/3) = 133.33
        assert all(0 <= value <= 133 for value in results)
        assert len(set(results)) > 1


class TestRetryConfig:
    """Test cases for RetryConfig."""

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.delay_ms == 50
        assert config.jitter is True

    def test_rejects_negative_values(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_retries=-1)
        with pytest.raises(ValidationError):
            RetryConfig(delay_ms=-5)


@pytest.fixture
def delay_mock():
    with patch("commerce_shared.retry.calculate_delay", MagicMock(return_value=10)) as mocked:
        yield mocked


@pytest.fixture
def sleep_mock():
    with patch("commerce_shared.retry.asyncio.sleep", new_callable=AsyncMock) as mocked:
        yield mocked


class TestRetryOnConflict:
    """Test cases for retry_on_conflict."""

    @pytest.mark.asyncio
    async def test_success_after_three_conflicts(self, delay_mock, sleep_mock):
        """Three conflicts then success: four calls, three delays."""
        error = ConflictError("version mismatch")
        execute_fn = AsyncMock(side_effect=[error, error, error, True])

        result = await retry_on_conflict(execute_fn)

        assert result is True
        assert execute_fn.await_args_list == [call(1), call(2), call(3), call(4)]
        expected_config = RetryConfig(max_retries=3, delay_ms=100, jitter=False)
        assert delay_mock.call_args_list == [
            call(1, expected_config),
            call(2, expected_config),
            call(3, expected_config),
        ]
        assert sleep_mock.await_args_list == [call(0.01), call(0.01), call(0.01)]

    @pytest.mark.asyncio
    async def test_exhaustion_propagates_last_conflict(self, delay_mock, sleep_mock):
        errors = [ConflictError(f"conflict {i}") for i in range(4)]
        execute_fn = AsyncMock(side_effect=errors)

        with pytest.raises(ConflictError) as exc_info:
            await retry_on_conflict(execute_fn)

        assert exc_info.value is errors[-1]
        assert execute_fn.await_count == 4
        assert delay_mock.call_count == 3

    @pytest.mark.asyncio
    async def test_non_conflict_short_circuits(self, delay_mock, sleep_mock):
        error = HttpStatusError(500, "server error")
        execute_fn = AsyncMock(side_effect=error)

        with pytest.raises(HttpStatusError) as exc_info:
            await retry_on_conflict(execute_fn, max_retries=5)

        assert exc_info.value is error
        execute_fn.assert_awaited_once_with(1)
        delay_mock.assert_not_called()
        sleep_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_plain_exceptions_are_not_retried(self, delay_mock, sleep_mock):
        execute_fn = AsyncMock(side_effect=[TransportError("down"), True])

        with pytest.raises(TransportError):
            await retry_on_conflict(execute_fn)

        assert execute_fn.await_count == 1

    @pytest.mark.asyncio
    async def test_passes_configuration_to_delay(self, delay_mock, sleep_mock):
        execute_fn = AsyncMock(side_effect=[ConflictError(), "done"])

        result = await retry_on_conflict(execute_fn, max_retries=2, delay_ms=5, jitter=True)

        assert result == "done"
        assert execute_fn.await_count == 2
        delay_mock.assert_called_once_with(1, RetryConfig(max_retries=2, delay_ms=5, jitter=True))

    @pytest.mark.asyncio
    async def test_zero_retries_calls_once(self, delay_mock, sleep_mock):
        execute_fn = AsyncMock(side_effect=ConflictError())

        with pytest.raises(ConflictError):
            await retry_on_conflict(execute_fn, max_retries=0)

        assert execute_fn.await_count == 1
        delay_mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_attempt_success_skips_delay(self, delay_mock, sleep_mock):
        execute_fn = AsyncMock(return_value={"id": "cart-1", "version": 2})

        result = await retry_on_conflict(execute_fn)

        assert result == {"id": "cart-1", "version": 2}
        delay_mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_attempt_number_drives_refetch(self, sleep_mock):
        """Callers can use the attempt number to refetch the latest version."""
        versions = {"cart-1": 1}
        seen = []

        async def update_cart(attempt):
            if attempt > 1:
                versions["cart-1"] += 1
            seen.append(versions["cart-1"])
            if versions["cart-1"] < 3:
                raise ConflictError("stale version")
            return versions["cart-1"]

        assert await retry_on_conflict(update_cart, delay_ms=1) == 3
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_real_sleep_with_small_delay(self):
        execute_fn = AsyncMock(side_effect=[ConflictError(), "ok"])
        assert await retry_on_conflict(execute_fn, delay_ms=1) == "ok"

    @pytest.mark.asyncio
    async def test_cancellation_is_not_swallowed(self, sleep_mock):
        execute_fn = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await retry_on_conflict(execute_fn)

        assert execute_fn.await_count == 1


class TestRetryConflictsDecorator:
    """Test cases for the retry_conflicts decorator."""

    @pytest.mark.asyncio
    async def test_decorated_function_is_retried(self, sleep_mock):
        calls = []

        @retry_conflicts(max_retries=2, delay_ms=1)
        async def set_name(product_id, name):
            calls.append((product_id, name))
            if len(calls) < 3:
                raise ConflictError()
            return name

        assert await set_name("p-1", name="shoe") == "shoe"
        assert calls == [("p-1", "shoe")] * 3
        assert set_name.__name__ == "set_name"

    @pytest.mark.asyncio
    async def test_decorated_function_exhausts(self, sleep_mock):
        inner = AsyncMock(side_effect=ConflictError())

        @retry_conflicts(max_retries=1, delay_ms=1)
        async def update():
            return await inner()

        with pytest.raises(ConflictError):
            await update()

        assert inner.await_count == 2
