"""
Core data models for the trivia game engine.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Difficulty(str, Enum):
    """Closed set of difficulty tiers."""
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"


@dataclass(frozen=True)
class Question:
    """A multiple-choice question with its correct answer."""
    text: str
    options: Tuple[str, ...]
    correct_answer: str


@dataclass(frozen=True)
class GameSettings:
    """User-configurable parameters for a game."""
    difficulty: Difficulty = Difficulty.NORMAL
    rounds: int = 5
    time_per_round: int = 10


@dataclass
class GameSession:
    """Mutable run-state for one playthrough."""
    active_questions: List[Question] = field(default_factory=list)
    current_index: int = 0
    time_left: int = 0
    score: int = 0


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of engine state for the presentation layer."""
    question: Optional[Question]
    current_index: int
    rounds: int
    time_left: int
    score: int
    is_game_over: bool
    difficulty: Difficulty
