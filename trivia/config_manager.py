"""
Configuration manager for trivia game settings and process configuration.
"""
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import InvalidSettingsError
from .models import Difficulty, GameSettings


logger = logging.getLogger(__name__)


def parse_difficulty(value: Union[Difficulty, str]) -> Difficulty:
    """
    Convert a difficulty tag into the closed Difficulty enum.

    Args:
        value: A Difficulty member or its exact name ("Easy", "Normal", "Hard")

    Returns:
        Matching Difficulty

    Raises:
        InvalidSettingsError: If the tag is not recognised
    """
    if isinstance(value, Difficulty):
        return value
    if isinstance(value, str):
        for difficulty in Difficulty:
            if difficulty.value == value:
                return difficulty
    error_msg = f"Unrecognised difficulty {value!r}; expected one of {', '.join(d.value for d in Difficulty)}"
    logger.error(error_msg)
    raise InvalidSettingsError(error_msg)


def _require_positive_int(name: str, value: Any) -> int:
    # bool is an int subclass and is never a meaningful count
    if not isinstance(value, int) or isinstance(value, bool):
        error_msg = f"{name} must be an integer, got {type(value).__name__}"
        logger.error(error_msg)
        raise InvalidSettingsError(error_msg)
    if value <= 0:
        error_msg = f"{name} must be positive, got {value}"
        logger.error(error_msg)
        raise InvalidSettingsError(error_msg)
    return value


def validate_settings(settings: GameSettings) -> GameSettings:
    """
    Validate game settings.

    Args:
        settings: Settings to check

    Returns:
        The settings with difficulty normalised to the enum

    Raises:
        InvalidSettingsError: If rounds or time per round is not a positive
            integer, or the difficulty is not recognised
    """
    if not isinstance(settings, GameSettings):
        raise InvalidSettingsError(f"Expected GameSettings, got {type(settings).__name__}")
    difficulty = parse_difficulty(settings.difficulty)
    rounds = _require_positive_int("rounds", settings.rounds)
    time_per_round = _require_positive_int("time_per_round", settings.time_per_round)
    return GameSettings(difficulty=difficulty, rounds=rounds, time_per_round=time_per_round)


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """
    Set up logging based on the 'logging' section of a configuration dict.

    Args:
        config: Full configuration dictionary, or None for defaults
    """
    log_config = (config or {}).get('logging') or {}
    level_name = str(log_config.get('level', 'INFO')).upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        raise InvalidSettingsError(f"Unknown logging level: {level_name}")

    handlers = [logging.StreamHandler()]
    log_directory = log_config.get('log_directory')
    if log_directory:
        log_path = Path(log_directory)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path / "trivia.log", encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


class ConfigManager:
    """Manages game settings and their defaults."""

    DEFAULT_DIFFICULTY = Difficulty.NORMAL
    DEFAULT_ROUNDS = 5
    DEFAULT_TIME_PER_ROUND = 10

    def __init__(self, settings: Optional[GameSettings] = None):
        """
        Initialize ConfigManager.

        Args:
            settings: Initial settings, defaults used if None

        Raises:
            InvalidSettingsError: If the initial settings are invalid
        """
        self.logger = logging.getLogger(__name__)
        self.raw_config: Dict[str, Any] = {}
        if settings is None:
            settings = self._default_settings()
        self._settings = validate_settings(settings)

    @classmethod
    def _default_settings(cls) -> GameSettings:
        return GameSettings(
            difficulty=cls.DEFAULT_DIFFICULTY,
            rounds=cls.DEFAULT_ROUNDS,
            time_per_round=cls.DEFAULT_TIME_PER_ROUND
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path] = "config.json") -> "ConfigManager":
        """
        Create a ConfigManager from a JSON configuration file.

        A missing file yields the defaults. Keys absent from the 'game'
        section also fall back to the defaults.

        Args:
            config_path: Path to the configuration file

        Returns:
            ConfigManager with the configured settings

        Raises:
            InvalidSettingsError: If the file is not valid JSON or holds invalid settings
        """
        path = Path(config_path)
        if not path.exists():
            logger.info(f"No configuration file at {path}, using defaults")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {path}: {e}")
            raise InvalidSettingsError(f"Invalid JSON in {path.name}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to read configuration {path}: {e}")
            raise InvalidSettingsError(f"Cannot read configuration {path}: {e}") from e

        if not isinstance(config, dict):
            raise InvalidSettingsError("Configuration must be a JSON object")

        game_config = config.get('game') or {}
        if not isinstance(game_config, dict):
            raise InvalidSettingsError("'game' section must be a JSON object")

        settings = GameSettings(
            difficulty=parse_difficulty(game_config.get('difficulty', cls.DEFAULT_DIFFICULTY)),
            rounds=game_config.get('rounds', cls.DEFAULT_ROUNDS),
            time_per_round=game_config.get('time_per_round', cls.DEFAULT_TIME_PER_ROUND)
        )
        manager = cls(settings)
        manager.raw_config = config
        manager.logger.info(f"Loaded configuration from {path}: {manager.get_settings_summary()}")
        return manager

    def get_game_settings(self) -> GameSettings:
        """
        Get current game settings.

        Returns:
            GameSettings with current configuration
        """
        return self._settings

    def update_settings(
        self,
        difficulty: Optional[Union[Difficulty, str]] = None,
        rounds: Optional[int] = None,
        time_per_round: Optional[int] = None
    ) -> GameSettings:
        """
        Change one or more settings.

        The merged settings are validated before anything is stored, so a
        failed update leaves the current settings untouched.

        Args:
            difficulty: New difficulty tier
            rounds: New round count
            time_per_round: New seconds per round

        Returns:
            The new settings

        Raises:
            InvalidSettingsError: If the merged settings are invalid
        """
        changes: Dict[str, Any] = {}
        if difficulty is not None:
            changes['difficulty'] = parse_difficulty(difficulty)
        if rounds is not None:
            changes['rounds'] = rounds
        if time_per_round is not None:
            changes['time_per_round'] = time_per_round

        self._settings = validate_settings(replace(self._settings, **changes))
        self.logger.info(f"Settings updated: {self.get_settings_summary()}")
        return self._settings

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = self._default_settings()
        self.logger.info("Settings reset to defaults")

    def get_settings_summary(self) -> str:
        """
        Get a human-readable summary of current settings.

        Returns:
            Formatted string describing current settings
        """
        s = self._settings
        round_word = "round" if s.rounds == 1 else "rounds"
        return f"{s.difficulty.value} difficulty, {s.rounds} {round_word}, {s.time_per_round} seconds per round"
