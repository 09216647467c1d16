"""
Unit tests for the CountdownDriver and timer lifecycle logging.
"""
import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from trivia.countdown import CountdownDriver, TimerLifecycleLogger
from trivia.errors import InvalidStateError
from trivia.game_engine import GameEngine
from trivia.models import Difficulty, GameSettings
from tests.test_fixtures import TestFixtures, AsyncTestHelpers


FAST = 0.001


class TestCountdownDriver(unittest.IsolatedAsyncioTestCase):
    """Test cases for driving the engine from an asyncio task."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = GameEngine(
            TestFixtures.create_sample_bank(),
            GameSettings(Difficulty.EASY, rounds=2, time_per_round=3),
            TestFixtures.create_seeded_rng()
        )

    async def test_ticks_until_game_over(self):
        """Test the driver times out every round and then stops itself."""
        driver = CountdownDriver(self.engine, interval=FAST)

        task = driver.start()
        await AsyncTestHelpers.run_with_timeout(task)

        self.assertTrue(self.engine.is_game_over())
        self.assertEqual(driver.ticks_delivered, 6)
        self.assertEqual(self.engine.score, 0)
        self.assertFalse(driver.is_running)

    async def test_on_tick_receives_snapshots(self):
        """Test the tick callback sees each state after the tick."""
        on_tick = AsyncMock()
        driver = CountdownDriver(self.engine, interval=FAST, on_tick=on_tick)

        await AsyncTestHelpers.run_with_timeout(driver.start())

        self.assertEqual(on_tick.await_count, 6)
        first = on_tick.await_args_list[0].args[0]
        last = on_tick.await_args_list[-1].args[0]
        self.assertEqual((first.current_index, first.time_left), (0, 2))
        self.assertTrue(last.is_game_over)

    async def test_cancel_stops_ticking(self):
        """Test a cancelled driver delivers no further ticks."""
        self.engine.update_settings(GameSettings(Difficulty.EASY, rounds=2, time_per_round=1000))
        driver = CountdownDriver(self.engine, interval=0.005)
        driver.start()
        await AsyncTestHelpers.wait_until(lambda: driver.ticks_delivered >= 2)

        self.assertTrue(await driver.cancel())
        ticks = driver.ticks_delivered
        time_left = self.engine.time_left
        await asyncio.sleep(0.05)

        self.assertFalse(driver.is_running)
        self.assertEqual(driver.ticks_delivered, ticks)
        self.assertEqual(self.engine.time_left, time_left)

    async def test_cancel_without_task(self):
        """Test cancelling an idle driver reports nothing cancelled."""
        driver = CountdownDriver(self.engine)
        self.assertFalse(await driver.cancel())

    async def test_cancel_after_completion(self):
        """Test cancelling a finished driver reports nothing cancelled."""
        driver = CountdownDriver(self.engine, interval=FAST)
        await AsyncTestHelpers.run_with_timeout(driver.start())
        self.assertFalse(await driver.cancel())

    async def test_start_twice_raises(self):
        """Test a running driver cannot be started again."""
        driver = CountdownDriver(self.engine, interval=10)
        driver.start()
        try:
            with self.assertRaises(InvalidStateError):
                driver.start()
        finally:
            await driver.cancel()

    async def test_start_on_finished_game_raises(self):
        """Test the driver refuses a terminal session."""
        for _ in range(2):
            self.engine.answer_question(self.engine.current_question().correct_answer)

        driver = CountdownDriver(self.engine, interval=FAST)
        with self.assertRaises(InvalidStateError):
            driver.start()

    async def test_superseded_session_is_not_ticked(self):
        """Test a driver stops when its session has been replaced."""
        driver = CountdownDriver(self.engine, interval=0.01)
        task = driver.start()
        self.engine.reset_game()

        await AsyncTestHelpers.run_with_timeout(task)

        self.assertEqual(driver.ticks_delivered, 0)
        self.assertEqual(self.engine.time_left, 3)
        self.assertEqual(self.engine.current_index, 0)

    async def test_stops_when_answers_end_the_game(self):
        """Test the driver notices a game ended by answers."""
        self.engine.update_settings(GameSettings(Difficulty.EASY, rounds=2, time_per_round=1000))
        driver = CountdownDriver(self.engine, interval=0.005)
        task = driver.start()
        for _ in range(2):
            self.engine.answer_question(self.engine.current_question().correct_answer)

        await AsyncTestHelpers.run_with_timeout(task)

        self.assertEqual(self.engine.score, 2)
        self.assertFalse(driver.is_running)

    async def test_ticks_wait_for_lock(self):
        """Test no tick is delivered while the shared lock is held."""
        lock = asyncio.Lock()
        driver = CountdownDriver(self.engine, lock=lock, interval=FAST)

        async with lock:
            driver.start()
            await asyncio.sleep(0.05)
            self.assertEqual(driver.ticks_delivered, 0)
            self.assertEqual(self.engine.time_left, 3)

        await AsyncTestHelpers.wait_until(lambda: driver.ticks_delivered >= 1)
        await driver.cancel()

    async def test_callback_error_propagates(self):
        """Test errors raised by the tick callback end the task and are logged."""
        on_tick = AsyncMock(side_effect=RuntimeError("render failed"))
        driver = CountdownDriver(self.engine, interval=FAST, on_tick=on_tick)

        with self.assertLogs('trivia.countdown', level='ERROR') as logs:
            task = driver.start()
            with self.assertRaises(RuntimeError):
                await AsyncTestHelpers.run_with_timeout(task)

        self.assertIn("render failed", "\n".join(logs.output))
        self.assertEqual(driver.ticks_delivered, 1)

    def test_interval_must_be_positive(self):
        """Test a zero interval is rejected."""
        with self.assertRaises(ValueError):
            CountdownDriver(self.engine, interval=0)


class TestTimerLifecycleLogger(unittest.TestCase):
    """Test cases for structured lifecycle logging."""

    def test_tick_logging_is_throttled(self):
        """Test ticks are logged only near the end or on multiples of ten."""
        with patch('trivia.countdown.logger') as mock_logger:
            TimerLifecycleLogger.log_tick(0, 17, 30)
            mock_logger.debug.assert_not_called()

            TimerLifecycleLogger.log_tick(0, 20, 30)
            TimerLifecycleLogger.log_tick(0, 3, 30)
            self.assertEqual(mock_logger.debug.call_count, 2)

    def test_completion_extra_fields(self):
        """Test completion events carry structured fields."""
        with patch('trivia.countdown.logger') as mock_logger:
            TimerLifecycleLogger.log_timer_completion("game_over", 6, 0.5)

        extra = mock_logger.info.call_args.kwargs['extra']
        self.assertEqual(extra['event_type'], 'timer_completed')
        self.assertEqual(extra['completion_type'], 'game_over')
        self.assertEqual(extra['ticks'], 6)


if __name__ == '__main__':
    unittest.main()
