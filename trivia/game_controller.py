"""
Game controller for the trivia quiz.
Serialises engine operations and owns the countdown timer lifecycle.
"""
import asyncio
import logging
from typing import Optional, Tuple, Union

from .config_manager import ConfigManager
from .countdown import CountdownDriver, TickCallback
from .errors import InvalidStateError
from .game_engine import GameEngine
from .models import Difficulty, GameSnapshot


class GameController:
    """
    Orchestrates a single-player game for a presentation layer.

    All mutations of the engine, whether from user answers, settings
    changes or timer ticks, run under one asyncio lock. The countdown is
    always cancelled before the session it drives is replaced.
    """

    def __init__(
        self,
        engine: Optional[GameEngine] = None,
        config_manager: Optional[ConfigManager] = None,
        interval: float = 1.0,
        on_tick: Optional[TickCallback] = None
    ):
        """
        Initialize the game controller.

        Args:
            engine: Engine to drive, one using the configured settings if None
            config_manager: Source of settings; if None, one seeded from the
                given engine's settings, or the defaults when no engine is given
            interval: Seconds between timer ticks
            on_tick: Awaited with a snapshot after every timer tick
        """
        self.logger = logging.getLogger(__name__)
        if config_manager is None:
            config_manager = ConfigManager(engine.settings) if engine is not None else ConfigManager()
        self.config_manager = config_manager
        self.engine = engine if engine is not None else GameEngine(
            settings=self.config_manager.get_game_settings()
        )
        self._lock = asyncio.Lock()
        self._interval = interval
        self._on_tick = on_tick
        self._driver: Optional[CountdownDriver] = None

        self.logger.info("GameController initialized")

    @property
    def is_timer_running(self) -> bool:
        return self._driver is not None and self._driver.is_running

    async def start_game(self) -> GameSnapshot:
        """
        Start a new game with the current settings and begin the countdown.

        Returns:
            Snapshot of the fresh session
        """
        await self._cancel_timer()
        async with self._lock:
            self.engine.reset_game(self.config_manager.get_game_settings())
            snapshot = self.engine.snapshot()
        self._start_timer()
        self.logger.info(f"Game started: {self.config_manager.get_settings_summary()}")
        return snapshot

    async def submit_answer(self, answer: str) -> bool:
        """
        Answer the current question.

        Args:
            answer: Option chosen by the player

        Returns:
            True if the answer was correct

        Raises:
            InvalidStateError: If the game is already over
        """
        async with self._lock:
            if self.engine.is_game_over():
                self.logger.error("Answer submitted after the game ended")
                raise InvalidStateError("Cannot answer: game is over")
            is_correct = self.engine.answer_question(answer)
            game_over = self.engine.is_game_over()

        if game_over:
            await self._cancel_timer()
            score, rounds = self.final_score()
            self.logger.info(f"Game finished with score {score}/{rounds}")
        return is_correct

    async def update_settings(
        self,
        difficulty: Optional[Union[Difficulty, str]] = None,
        rounds: Optional[int] = None,
        time_per_round: Optional[int] = None
    ) -> GameSnapshot:
        """
        Change settings and reset the game without starting the countdown.

        Args:
            difficulty: New difficulty tier
            rounds: New round count
            time_per_round: New seconds per round

        Returns:
            Snapshot of the reset session

        Raises:
            InvalidSettingsError: If the new settings are invalid; the
                running game and its timer are left untouched
        """
        settings = self.config_manager.update_settings(
            difficulty=difficulty, rounds=rounds, time_per_round=time_per_round
        )
        await self._cancel_timer()
        async with self._lock:
            self.engine.update_settings(settings)
            return self.engine.snapshot()

    async def stop(self) -> None:
        """Stop the countdown, leaving the session as it is."""
        await self._cancel_timer()

    def snapshot(self) -> GameSnapshot:
        return self.engine.snapshot()

    def final_score(self) -> Tuple[int, int]:
        """
        Get the result of the session.

        Returns:
            Tuple of (score, number of rounds)
        """
        return self.engine.score, self.engine.rounds

    def _start_timer(self) -> None:
        self._driver = CountdownDriver(
            self.engine,
            lock=self._lock,
            interval=self._interval,
            on_tick=self._on_tick
        )
        self._driver.start()

    async def _cancel_timer(self) -> None:
        if self._driver is None:
            return
        cancelled = await self._driver.cancel()
        if cancelled:
            self.logger.debug("Countdown cancelled")
        self._driver = None
