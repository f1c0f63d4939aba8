"""Configuration settings for the study engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
LOGS_DIR = DATA_DIR / "logs"
PRONUNCIATIONS_DIR = DATA_DIR / "pronunciations"

# Hint scoring policies
HINT_POLICY_NONE = "none"  # hints never change the score
HINT_POLICY_NO_CREDIT = "no_credit"  # a hinted correct answer is not counted as correct
HINT_POLICIES = (HINT_POLICY_NONE, HINT_POLICY_NO_CREDIT)


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        LOGS_DIR,
        PRONUNCIATIONS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocastudy.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = os.getenv("LOG_FILE", None)
    max_bytes: int = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "5"))


@dataclass
class BotSettings:
    """Telegram front-end settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    pronunciation_enabled: bool = os.getenv("PRONUNCIATION_ENABLED", "true").lower() == "true"
    pronunciations_dir: Path = PRONUNCIATIONS_DIR


@dataclass
class StudySettings:
    """Study session settings."""
    options_per_question: int = int(os.getenv("OPTIONS_PER_QUESTION", "4"))
    correct_delay_ms: int = int(os.getenv("CORRECT_DELAY_MS", "1000"))
    incorrect_delay_ms: int = int(os.getenv("INCORRECT_DELAY_MS", "2000"))
    comprehensive_delay_ms: int = int(os.getenv("COMPREHENSIVE_DELAY_MS", "1000"))
    pronounce_delay_ms: int = int(os.getenv("PRONOUNCE_DELAY_MS", "300"))
    hint_length: int = int(os.getenv("HINT_LENGTH", "2"))
    hint_policy: str = os.getenv("HINT_POLICY", HINT_POLICY_NONE)
    rng_seed: Optional[int] = field(default_factory=lambda: _optional_int("RNG_SEED"))


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_study_settings() -> StudySettings:
    """Get study settings."""
    return StudySettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    study: StudySettings = field(default_factory=get_study_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.study.options_per_question < 2:
            raise ValueError("OPTIONS_PER_QUESTION must be at least 2")

        if min(
            self.study.correct_delay_ms,
            self.study.incorrect_delay_ms,
            self.study.comprehensive_delay_ms,
            self.study.pronounce_delay_ms,
        ) < 0:
            raise ValueError("Feedback and pronunciation delays cannot be negative")

        if self.study.hint_length < 1:
            raise ValueError("HINT_LENGTH must be positive")

        if self.study.hint_policy not in HINT_POLICIES:
            raise ValueError(f"HINT_POLICY must be one of {', '.join(HINT_POLICIES)}")


# Create global settings instance
settings = Settings()
settings.validate()
