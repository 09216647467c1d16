"""
Question bank loading and validation for the trivia game engine.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from .errors import QuestionBankError
from .models import Difficulty, Question


DEFAULT_BANK_PATH = Path(__file__).parent / "data" / "questions.json"
OPTIONS_PER_QUESTION = 4


class QuestionBank:
    """Immutable question sets partitioned by difficulty tier."""

    def __init__(self, tiers: Dict[Difficulty, Iterable[Question]]):
        """
        Build a question bank from already constructed questions.

        Args:
            tiers: Mapping of every difficulty to its questions

        Raises:
            QuestionBankError: If a tier is missing, empty, or holds an invalid question
        """
        self.logger = logging.getLogger(__name__)
        self._tiers: Dict[Difficulty, Tuple[Question, ...]] = {}

        for difficulty in Difficulty:
            if difficulty not in tiers:
                raise QuestionBankError(f"Question bank is missing tier '{difficulty.value}'")
            questions = tuple(tiers[difficulty])
            if not questions:
                raise QuestionBankError(f"Tier '{difficulty.value}' cannot be empty")
            for i, question in enumerate(questions):
                self._validate_question(difficulty, i, question)
            self._tiers[difficulty] = questions

        self.logger.debug(
            "Question bank ready: " +
            ", ".join(f"{d.value}={len(q)}" for d, q in self._tiers.items())
        )

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> "QuestionBank":
        """
        Load a question bank from a JSON file.

        Expected structure:
        {
            "Easy": [
                {
                    "question": str,
                    "options": [str, str, str, str],
                    "answer": str
                }
            ],
            "Normal": [...],
            "Hard": [...]
        }

        Args:
            file_path: Path to the JSON file

        Returns:
            Validated QuestionBank

        Raises:
            QuestionBankError: If the file cannot be read or its contents are invalid
        """
        logger = logging.getLogger(__name__)
        path = Path(file_path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in question bank {path}: {e}")
            raise QuestionBankError(f"Invalid JSON in {path.name}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to read question bank {path}: {e}")
            raise QuestionBankError(f"Cannot read question bank {path}: {e}") from e

        bank = cls.from_dict(data)
        logger.info(f"Loaded question bank from {path}")
        return bank

    @classmethod
    def from_dict(cls, data: dict) -> "QuestionBank":
        """
        Build a question bank from parsed JSON data.

        Args:
            data: Parsed JSON object keyed by tier name

        Returns:
            Validated QuestionBank

        Raises:
            QuestionBankError: If the structure is invalid
        """
        if not isinstance(data, dict):
            raise QuestionBankError("Question bank data must be a JSON object")

        tiers: Dict[Difficulty, List[Question]] = {}
        for difficulty in Difficulty:
            if difficulty.value not in data:
                raise QuestionBankError(f"Question bank is missing tier '{difficulty.value}'")
            entries = data[difficulty.value]
            if not isinstance(entries, list):
                raise QuestionBankError(f"Tier '{difficulty.value}' must be an array")
            tiers[difficulty] = [
                cls._parse_question(difficulty, i, entry) for i, entry in enumerate(entries)
            ]

        unknown = set(data) - {d.value for d in Difficulty}
        if unknown:
            raise QuestionBankError(f"Unknown tiers in question bank: {', '.join(sorted(unknown))}")

        return cls(tiers)

    @classmethod
    def load_default(cls) -> "QuestionBank":
        """Load the question bank bundled with the package."""
        return cls.from_file(DEFAULT_BANK_PATH)

    @staticmethod
    def _parse_question(difficulty: Difficulty, index: int, entry: dict) -> Question:
        """Convert one JSON entry into a Question, checking field types."""
        where = f"{difficulty.value} question {index}"
        if not isinstance(entry, dict):
            raise QuestionBankError(f"{where} must be an object")

        for key in ("question", "options", "answer"):
            if key not in entry:
                raise QuestionBankError(f"{where} missing '{key}' field")

        if not isinstance(entry["question"], str):
            raise QuestionBankError(f"{where} 'question' field must be a string")
        if not isinstance(entry["answer"], str):
            raise QuestionBankError(f"{where} 'answer' field must be a string")
        options = entry["options"]
        if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
            raise QuestionBankError(f"{where} 'options' field must be an array of strings")

        return Question(
            text=entry["question"],
            options=tuple(options),
            correct_answer=entry["answer"]
        )

    @staticmethod
    def _validate_question(difficulty: Difficulty, index: int, question: Question) -> None:
        where = f"{difficulty.value} question {index}"
        if not question.text.strip():
            raise QuestionBankError(f"{where} has empty text")
        if len(question.options) != OPTIONS_PER_QUESTION:
            raise QuestionBankError(
                f"{where} must have exactly {OPTIONS_PER_QUESTION} options, got {len(question.options)}"
            )
        if len(set(question.options)) != len(question.options):
            raise QuestionBankError(f"{where} has duplicate options")
        if question.correct_answer not in question.options:
            raise QuestionBankError(f"{where} correct answer '{question.correct_answer}' is not among its options")

    def get_tier(self, difficulty: Difficulty) -> Tuple[Question, ...]:
        """
        Get the full fixed question set for a tier.

        Args:
            difficulty: Difficulty tier

        Returns:
            Tuple of every question in the tier

        Raises:
            QuestionBankError: If the tier is unknown
        """
        try:
            return self._tiers[difficulty]
        except KeyError:
            self.logger.error(f"Requested unknown tier {difficulty!r}")
            raise QuestionBankError(f"Unknown difficulty tier: {difficulty!r}") from None

    def tier_size(self, difficulty: Difficulty) -> int:
        """Number of questions available in a tier."""
        return len(self.get_tier(difficulty))
