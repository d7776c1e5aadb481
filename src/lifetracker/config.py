"""Configuration management for lifetracker.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .engine.status import StatusPolicy

# Load .env file if present
load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Default owner for CLI calls
    owner_id: str

    # Status derivation
    at_risk_window_days: int
    goal_risk_threshold: int
    project_risk_threshold: int
    reading_risk_threshold: int

    # Analytics
    streak_lookback_days: int
    top_n: int
    yearly_reading_goal: int

    # Logging
    log_level: str
    log_file: Optional[Path]

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "LIFETRACKER_DB_PATH",
            str(Path.home() / ".lifetracker" / "lifetracker.db"),
        )
        log_file = os.environ.get("LIFETRACKER_LOG_FILE")

        return cls(
            db_path=Path(db_path_str).expanduser(),
            owner_id=os.environ.get("LIFETRACKER_OWNER", "local"),
            at_risk_window_days=int(os.environ.get("LIFETRACKER_AT_RISK_DAYS", "7")),
            goal_risk_threshold=int(
                os.environ.get("LIFETRACKER_GOAL_RISK_THRESHOLD", "80")
            ),
            project_risk_threshold=int(
                os.environ.get("LIFETRACKER_PROJECT_RISK_THRESHOLD", "75")
            ),
            reading_risk_threshold=int(
                os.environ.get("LIFETRACKER_READING_RISK_THRESHOLD", "75")
            ),
            streak_lookback_days=int(
                os.environ.get("LIFETRACKER_STREAK_LOOKBACK", "30")
            ),
            top_n=int(os.environ.get("LIFETRACKER_TOP_N", "5")),
            yearly_reading_goal=int(
                os.environ.get("LIFETRACKER_YEARLY_READING_GOAL", "52")
            ),
            log_level=os.environ.get("LIFETRACKER_LOG_LEVEL", "WARNING").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.at_risk_window_days < 0:
            errors.append("LIFETRACKER_AT_RISK_DAYS must not be negative")

        for name, value in (
            ("LIFETRACKER_GOAL_RISK_THRESHOLD", self.goal_risk_threshold),
            ("LIFETRACKER_PROJECT_RISK_THRESHOLD", self.project_risk_threshold),
            ("LIFETRACKER_READING_RISK_THRESHOLD", self.reading_risk_threshold),
        ):
            if not 0 <= value <= 100:
                errors.append(f"{name} must be between 0 and 100")

        if self.streak_lookback_days < 1:
            errors.append("LIFETRACKER_STREAK_LOOKBACK must be at least 1")

        if self.top_n < 1:
            errors.append("LIFETRACKER_TOP_N must be at least 1")

        return errors

    def status_policy(self) -> StatusPolicy:
        """Build the status derivation policy from configured thresholds."""
        return StatusPolicy(
            at_risk_window_days=self.at_risk_window_days,
            goal_risk_threshold=self.goal_risk_threshold,
            project_risk_threshold=self.project_risk_threshold,
            reading_risk_threshold=self.reading_risk_threshold,
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
