"""
Game engine for the trivia quiz.
Handles question selection, round progression, timing and scoring.
"""
import logging
import random
from typing import Callable, List, Optional

from .config_manager import validate_settings
from .errors import InvalidStateError
from .models import GameSession, GameSettings, GameSnapshot, Question
from .question_bank import QuestionBank


logger = logging.getLogger(__name__)

Listener = Callable[["GameEngine"], None]


class GameEngine:
    """
    Owns the active game session and the rules that mutate it.

    The engine is synchronous and holds no timers. A driver calls tick()
    once per second and the presentation layer re-reads state after each
    mutating call, or registers a listener to be told about it.
    """

    def __init__(
        self,
        question_bank: Optional[QuestionBank] = None,
        settings: Optional[GameSettings] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the engine and start a first session.

        Args:
            question_bank: Source of questions, the bundled bank if None
            settings: Initial settings, defaults if None
            rng: Random source for sampling and shuffling
        """
        self._bank = question_bank if question_bank is not None else QuestionBank.load_default()
        self._rng = rng if rng is not None else random.Random()
        self._settings = validate_settings(settings if settings is not None else GameSettings())
        self._session = GameSession()
        self._listeners: List[Listener] = []
        self.reset_game()

    # -- state access --

    @property
    def settings(self) -> GameSettings:
        """
        Settings as requested.

        settings.rounds may exceed the session length when the tier is
        smaller; read rounds or snapshot().rounds for the number of rounds played.
        """
        return self._settings

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def score(self) -> int:
        return self._session.score

    @property
    def time_left(self) -> int:
        return self._session.time_left

    @property
    def current_index(self) -> int:
        return self._session.current_index

    @property
    def rounds(self) -> int:
        """Effective number of rounds, clamped to the tier size."""
        return len(self._session.active_questions)

    def current_question(self) -> Optional[Question]:
        """Question for the current round, or None once the session is over."""
        index = self._session.current_index
        if index < len(self._session.active_questions):
            return self._session.active_questions[index]
        return None

    def is_game_over(self) -> bool:
        return self._session.current_index >= self.rounds

    def snapshot(self) -> GameSnapshot:
        """Capture the current state for rendering."""
        return GameSnapshot(
            question=self.current_question(),
            current_index=self._session.current_index,
            rounds=self.rounds,
            time_left=self._session.time_left,
            score=self._session.score,
            is_game_over=self.is_game_over(),
            difficulty=self._settings.difficulty
        )

    # -- listeners --

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked with the engine after every state change."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Unregister a callback. Unknown callbacks are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- operations --

    def select_questions(self, settings: GameSettings) -> List[Question]:
        """
        Sample questions for a new session.

        Draws min(rounds, tier size) distinct questions from the tier in
        random order, each with its options independently shuffled.

        Args:
            settings: Settings naming the tier and round count

        Returns:
            List of questions for the session
        """
        tier = self._bank.get_tier(settings.difficulty)
        count = min(settings.rounds, len(tier))
        if count < settings.rounds:
            logger.warning(
                f"Requested {settings.rounds} rounds but tier {settings.difficulty.value} "
                f"has only {len(tier)} questions; clamping to {count}"
            )

        selected = self._rng.sample(tier, count)
        return [self.shuffle_options(question) for question in selected]

    def shuffle_options(self, question: Question) -> Question:
        """
        Return a copy of the question with its options in random order.

        Args:
            question: Question to shuffle

        Returns:
            New Question with the same text, answer and option set
        """
        options = list(question.options)
        self._rng.shuffle(options)
        return Question(
            text=question.text,
            options=tuple(options),
            correct_answer=question.correct_answer
        )

    def reset_game(self, settings: Optional[GameSettings] = None) -> None:
        """
        Replace the session with a fresh one.

        Args:
            settings: Settings to use, the current settings if None

        Raises:
            InvalidSettingsError: If the given settings are invalid
        """
        new_settings = validate_settings(settings) if settings is not None else self._settings
        active_questions = self.select_questions(new_settings)

        self._settings = new_settings
        self._session = GameSession(
            active_questions=active_questions,
            current_index=0,
            time_left=new_settings.time_per_round,
            score=0
        )
        logger.info(
            f"Game reset: difficulty={self._settings.difficulty.value}, "
            f"rounds={self.rounds}, time_per_round={self._settings.time_per_round}"
        )
        self._notify()

    def update_settings(self, new_settings: GameSettings) -> None:
        """
        Validate and store new settings, then reset the game.

        Args:
            new_settings: Settings to apply

        Raises:
            InvalidSettingsError: If rounds or time per round is not positive,
                or the difficulty is not recognised
        """
        validated = validate_settings(new_settings)
        logger.info(f"Settings changed from {self._settings} to {validated}")
        self.reset_game(validated)

    def answer_question(self, answer: str) -> bool:
        """
        Answer the current question and advance to the next round.

        Args:
            answer: Chosen option, compared by exact string equality

        Returns:
            True if the answer was correct

        Raises:
            InvalidStateError: If the session is already over
        """
        self._require_active("answer_question")

        question = self.current_question()
        is_correct = answer == question.correct_answer
        if is_correct:
            self._session.score += 1
        logger.debug(
            f"Round {self._session.current_index + 1}/{self.rounds} answered "
            f"{'correctly' if is_correct else 'incorrectly'}; score={self._session.score}"
        )
        self._advance_round()
        self._notify()
        return is_correct

    def tick(self) -> bool:
        """
        Count down one second of the current round.

        When the countdown reaches zero the round advances with no change
        to the score.

        Returns:
            True if this tick expired the round

        Raises:
            InvalidStateError: If the session is already over
        """
        self._require_active("tick")

        expired = False
        if self._session.time_left > 0:
            self._session.time_left -= 1
            if self._session.time_left == 0:
                logger.debug(f"Time expired on round {self._session.current_index + 1}/{self.rounds}")
                self._advance_round()
                expired = True
        self._notify()
        return expired

    def _require_active(self, operation: str) -> None:
        if self.is_game_over():
            error_msg = f"Cannot {operation}: game is over (round {self._session.current_index}/{self.rounds})"
            logger.error(error_msg)
            raise InvalidStateError(error_msg)

    def _advance_round(self) -> None:
        session = self._session
        if session.current_index < self.rounds - 1:
            session.current_index += 1
            session.time_left = self._settings.time_per_round
        else:
            session.current_index = self.rounds
            logger.info(f"Game over: score {session.score}/{self.rounds}")
