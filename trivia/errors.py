"""
Exception hierarchy for the trivia game engine.
"""


class TriviaError(Exception):
    """Base exception for trivia engine errors."""
    pass


class InvalidStateError(TriviaError):
    """Raised when an operation is invoked on a session in the wrong state."""
    pass


class InvalidSettingsError(TriviaError):
    """Raised when game settings or configuration fail validation."""
    pass


class QuestionBankError(TriviaError):
    """Raised when question bank data is malformed or a tier is unknown."""
    pass
