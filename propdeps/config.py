"""Configuration management for propdeps.

Loads environment variables and provides centralized config access.
"""
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import FrozenSet, Iterable, Optional

from dotenv import load_dotenv

# Version - bump together with pyproject.toml
__version__ = "0.3.0"

DEFAULT_REGISTRATION_CALLEE = "shouldSkipUpdate"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AnalysisOptions:
    """Per-invocation analysis settings handed to the engine.

    Attributes:
        ignore: Root prop keys exempt from every check
        skip_undeclared: Do not report root keys missing from the declared shape
        custom_validators: Validator names whose props are never reported
        check_unused_dependencies: Report dependency entries nothing reads
        match_descendants: A dependency entry also covers paths below it and
            the paths it refines (``name`` covers ``name.first``); False
            requires exact entries
        registration_callee: Callee wrapping the dependency list
    """
    ignore: FrozenSet[str] = frozenset()
    skip_undeclared: bool = False
    custom_validators: FrozenSet[str] = frozenset()
    check_unused_dependencies: bool = False
    match_descendants: bool = True
    registration_callee: str = DEFAULT_REGISTRATION_CALLEE

    def with_overrides(self, **changes) -> 'AnalysisOptions':
        """Copy with the non-None values of ``changes`` applied."""
        changes = {key: value for key, value in changes.items() if value is not None}
        for key in ('ignore', 'custom_validators'):
            if key in changes:
                changes[key] = frozenset(changes[key])
        return replace(self, **changes)


def _split_list(raw: Optional[str]) -> FrozenSet[str]:
    if not raw:
        return frozenset()
    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def _flag(raw: Optional[str]) -> bool:
    return raw is not None and raw.strip().lower() in _TRUE_VALUES


class Config:
    """Configuration loader with environment variable support."""

    LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading the .env file.

        Args:
            env_path: Explicit .env location (defaults to ./.env)

        Raises:
            ValueError: If PROPDEPS_LOG_LEVEL is not a logging level name
        """
        load_dotenv(env_path or Path.cwd() / ".env")
        self._validate()

    def _validate(self):
        if self.log_level not in self.LOG_LEVELS:
            raise ValueError(
                f"PROPDEPS_LOG_LEVEL must be one of {', '.join(self.LOG_LEVELS)}, "
                f"got {self.log_level!r}"
            )

    @property
    def ignore(self) -> FrozenSet[str]:
        """Root prop keys ignored by every check (PROPDEPS_IGNORE, comma separated)."""
        return _split_list(os.getenv("PROPDEPS_IGNORE"))

    @property
    def skip_undeclared(self) -> bool:
        return _flag(os.getenv("PROPDEPS_SKIP_UNDECLARED"))

    @property
    def custom_validators(self) -> FrozenSet[str]:
        """Custom PropTypes validator names (PROPDEPS_CUSTOM_VALIDATORS)."""
        return _split_list(os.getenv("PROPDEPS_CUSTOM_VALIDATORS"))

    @property
    def check_unused(self) -> bool:
        return _flag(os.getenv("PROPDEPS_CHECK_UNUSED"))

    @property
    def strict_match(self) -> bool:
        """Require exact dependency entries (PROPDEPS_STRICT_MATCH)."""
        return _flag(os.getenv("PROPDEPS_STRICT_MATCH"))

    @property
    def registration_callee(self) -> str:
        return os.getenv("PROPDEPS_REGISTRATION_CALLEE", DEFAULT_REGISTRATION_CALLEE)

    @property
    def log_level(self) -> str:
        return os.getenv("PROPDEPS_LOG_LEVEL", "WARNING").upper()

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    def analysis_options(self, **overrides) -> AnalysisOptions:
        """Build AnalysisOptions from the environment, then apply CLI overrides.

        Args:
            **overrides: AnalysisOptions fields; None values keep the environment value

        Returns:
            Immutable options for one analysis run
        """
        options = AnalysisOptions(
            ignore=self.ignore,
            skip_undeclared=self.skip_undeclared,
            custom_validators=self.custom_validators,
            check_unused_dependencies=self.check_unused,
            match_descendants=not self.strict_match,
            registration_callee=self.registration_callee,
        )
        return options.with_overrides(**overrides)


def merge_names(base: FrozenSet[str], extra: Iterable[str]) -> FrozenSet[str]:
    """Union of configured names and names given on the command line."""
    return frozenset(base) | frozenset(extra or ())


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached Config (tests change the environment between runs)."""
    global _config
    _config = None
