"""Tests for execute_with_retry.

Tests cover:
1. Success on first and later attempts
2. Exhaustion re-raises the last error after max_attempts
3. Backoff delays follow the policy and are non-decreasing
4. Cancellation is never retried, whether raised by the operation,
   during a backoff sleep, or by cancelling the awaiting task
"""

import asyncio
import unittest
from unittest.mock import AsyncMock

from domain.model.errors import TransientUnavailableError
from utils.backoff import BackoffPolicy
from utils.retry import execute_with_retry


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestExecuteWithRetry(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.sleep = RecordingSleep()

    async def test_returns_first_success_without_sleeping(self):
        op = AsyncMock(return_value="ok")

        result = await execute_with_retry(op, sleep=self.sleep)

        self.assertEqual(result, "ok")
        op.assert_awaited_once()
        self.assertEqual(self.sleep.delays, [])

    async def test_retries_until_success(self):
        op = AsyncMock(side_effect=[TransientUnavailableError("lag"), TransientUnavailableError("lag"), "ok"])

        result = await execute_with_retry(op, max_attempts=3, sleep=self.sleep)

        self.assertEqual(result, "ok")
        self.assertEqual(op.await_count, 3)
        self.assertEqual(len(self.sleep.delays), 2)

    async def test_exhaustion_reraises_last_error(self):
        errors = [TransientUnavailableError(f"attempt {i}") for i in range(1, 4)]
        op = AsyncMock(side_effect=errors)

        with self.assertRaises(TransientUnavailableError) as ctx:
            await execute_with_retry(op, max_attempts=3, sleep=self.sleep)

        self.assertIs(ctx.exception, errors[-1])
        self.assertEqual(op.await_count, 3)

    async def test_any_exception_is_retried(self):
        op = AsyncMock(side_effect=[KeyError("x"), RuntimeError("y"), "ok"])

        self.assertEqual(await execute_with_retry(op, sleep=self.sleep), "ok")

    async def test_delays_follow_policy(self):
        op = AsyncMock(side_effect=TransientUnavailableError("down"))

        with self.assertRaises(TransientUnavailableError):
            await execute_with_retry(op, policy=BackoffPolicy(), max_attempts=3, sleep=self.sleep)

        self.assertEqual(len(self.sleep.delays), 2)
        for attempt, delay in enumerate(self.sleep.delays, start=1):
            self.assertGreaterEqual(delay, 2 ** attempt)
            self.assertLess(delay, 2 ** attempt + 0.5)
        self.assertEqual(self.sleep.delays, sorted(self.sleep.delays))

    async def test_single_attempt_never_sleeps(self):
        op = AsyncMock(side_effect=TransientUnavailableError("down"))

        with self.assertRaises(TransientUnavailableError):
            await execute_with_retry(op, max_attempts=1, sleep=self.sleep)

        op.assert_awaited_once()
        self.assertEqual(self.sleep.delays, [])

    async def test_invalid_max_attempts(self):
        with self.assertRaises(ValueError):
            await execute_with_retry(AsyncMock(), max_attempts=0)

    async def test_cancellation_from_operation_is_not_retried(self):
        op = AsyncMock(side_effect=asyncio.CancelledError())

        with self.assertRaises(asyncio.CancelledError):
            await execute_with_retry(op, max_attempts=3, sleep=self.sleep)

        op.assert_awaited_once()
        self.assertEqual(self.sleep.delays, [])

    async def test_cancellation_during_backoff_stops_retries(self):
        op = AsyncMock(side_effect=TransientUnavailableError("lag"))
        sleep = AsyncMock(side_effect=asyncio.CancelledError())

        with self.assertRaises(asyncio.CancelledError):
            await execute_with_retry(op, max_attempts=3, sleep=sleep)

        op.assert_awaited_once()
        sleep.assert_awaited_once()

    async def test_cancelling_task_interrupts_real_backoff(self):
        attempts = 0
        failed = asyncio.Event()

        async def op():
            nonlocal attempts
            attempts += 1
            failed.set()
            raise TransientUnavailableError("not visible yet")

        task = asyncio.create_task(
            execute_with_retry(op, policy=BackoffPolicy(base=1, max_jitter_ms=0), max_attempts=3)
        )
        await failed.wait()
        await asyncio.sleep(0)
        task.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(attempts, 1)

    async def test_logs_each_retry(self):
        op = AsyncMock(side_effect=[TransientUnavailableError("lag"), "ok"])

        with self.assertLogs('utils.retry', level='WARNING') as logs:
            await execute_with_retry(
                op, operation_name="get", log_extra={"userId": "u-1"}, sleep=self.sleep,
            )

        self.assertEqual(len(logs.records), 1)
        record = logs.records[0]
        self.assertEqual(record.operation, "get")
        self.assertEqual(record.userId, "u-1")
        self.assertEqual(record.attempt, 1)


if __name__ == '__main__':
    unittest.main()
