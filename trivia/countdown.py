"""
Countdown driver for the trivia game engine.
Runs the per-second timer as an asyncio task that calls GameEngine.tick().
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .errors import InvalidStateError
from .game_engine import GameEngine
from .models import GameSnapshot

# Set up logger for timer operations
logger = logging.getLogger(__name__)

TickCallback = Callable[[GameSnapshot], Awaitable[Any]]


class TimerLifecycleLogger:
    """Structured logging for countdown lifecycle events."""

    @staticmethod
    def log_timer_start(round_index: int, time_left: int, interval: float) -> None:
        """Log countdown start."""
        logger.info(
            f"Timer lifecycle: COUNTDOWN_START - Round {round_index + 1}, {time_left}s left, interval {interval}s",
            extra={
                'event_type': 'timer_countdown_start',
                'round_index': round_index,
                'time_left': time_left,
                'interval': interval,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_tick(round_index: int, time_left: int, time_per_round: int) -> None:
        """Log tick events (throttled to avoid spam)."""
        # Log only at specific intervals to avoid log spam
        if time_left % 10 == 0 or time_left <= 5:
            progress_percent = ((time_per_round - time_left) / time_per_round) * 100
            logger.debug(
                f"Timer lifecycle: TICK - Round {round_index + 1}, Remaining {time_left}s ({progress_percent:.1f}% elapsed)",
                extra={
                    'event_type': 'timer_tick',
                    'round_index': round_index,
                    'time_left': time_left,
                    'time_per_round': time_per_round,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_round_expired(round_index: int) -> None:
        """Log a round ending because its countdown reached zero."""
        logger.info(
            f"Timer lifecycle: ROUND_EXPIRED - Round {round_index + 1}",
            extra={
                'event_type': 'timer_round_expired',
                'round_index': round_index,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_completion(completion_type: str, ticks: int, elapsed: float) -> None:
        """Log countdown completion (game over, superseded session or cancellation)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Type {completion_type}, {ticks} ticks in {elapsed:.3f}s",
            extra={
                'event_type': 'timer_completed',
                'completion_type': completion_type,
                'ticks': ticks,
                'elapsed': elapsed,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class CountdownDriver:
    """
    Calls GameEngine.tick() once per interval while the session is active.

    The driver owns the timer lifecycle: it stops itself when the game is
    over or when the session it was started for has been replaced, and it
    can be cancelled at any time. Every tick is delivered while holding the
    shared lock so that ticks never interleave with answers.
    """

    def __init__(
        self,
        engine: GameEngine,
        lock: Optional[asyncio.Lock] = None,
        interval: float = 1.0,
        on_tick: Optional[TickCallback] = None
    ):
        """
        Initialize the driver.

        Args:
            engine: Engine to tick
            lock: Lock serialising engine mutations, a private one if None
            interval: Seconds between ticks
            on_tick: Awaited with a snapshot after every tick
        """
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self._engine = engine
        self._lock = lock if lock is not None else asyncio.Lock()
        self._interval = interval
        self._on_tick = on_tick
        self._task: Optional[asyncio.Task] = None
        self._ticks_delivered = 0

    @property
    def is_running(self) -> bool:
        """Check if the countdown task is still active."""
        return self._task is not None and not self._task.done()

    @property
    def ticks_delivered(self) -> int:
        """Number of ticks delivered to the engine since the last start."""
        return self._ticks_delivered

    def start(self) -> asyncio.Task:
        """
        Start the countdown as a background task.

        Returns:
            The countdown task

        Raises:
            InvalidStateError: If the driver is already running or the game is over
        """
        if self.is_running:
            TimerLifecycleLogger.log_timer_error("already_running", "countdown task still active", "start")
            raise InvalidStateError("Countdown is already running")
        if self._engine.is_game_over():
            TimerLifecycleLogger.log_timer_error("game_over", "session is terminal", "start")
            raise InvalidStateError("Cannot start countdown: game is over")

        self._ticks_delivered = 0
        self._task = asyncio.create_task(self._run(self._engine.session))
        return self._task

    async def cancel(self) -> bool:
        """
        Cancel the countdown and wait for the task to finish.

        Returns:
            True if a running task was cancelled, False if there was nothing to cancel
        """
        task = self._task
        if task is None or task.done():
            return False

        task.cancel()
        if task is asyncio.current_task():
            # Cancelled from within a tick callback; the task unwinds on its next await
            return True
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Countdown task cancelled")
        return True

    async def _run(self, session) -> None:
        engine = self._engine
        TimerLifecycleLogger.log_timer_start(engine.current_index, engine.time_left, self._interval)
        started = time.monotonic()
        completion_type = "game_over"

        try:
            while True:
                await asyncio.sleep(self._interval)

                async with self._lock:
                    if engine.session is not session:
                        completion_type = "superseded"
                        break
                    if engine.is_game_over():
                        break
                    round_index = engine.current_index
                    expired = engine.tick()
                    self._ticks_delivered += 1
                    snapshot = engine.snapshot()

                if expired:
                    TimerLifecycleLogger.log_round_expired(round_index)
                else:
                    TimerLifecycleLogger.log_tick(round_index, snapshot.time_left, engine.settings.time_per_round)

                if self._on_tick is not None:
                    await self._on_tick(snapshot)

                if snapshot.is_game_over:
                    break

        except asyncio.CancelledError:
            completion_type = "cancelled"
            raise
        except Exception as e:
            completion_type = "error"
            TimerLifecycleLogger.log_timer_error(type(e).__name__, str(e), "tick")
            raise
        finally:
            TimerLifecycleLogger.log_timer_completion(
                completion_type, self._ticks_delivered, time.monotonic() - started
            )
