"""Configuration settings for the study backend."""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# SM-2 constants
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///unilearn.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class SpacedRepetitionSettings:
    """SM-2 scheduling settings."""
    initial_ease_factor: float = float(os.getenv("SRS_INITIAL_EASE_FACTOR", str(INITIAL_EASE_FACTOR)))
    min_ease_factor: float = float(os.getenv("SRS_MIN_EASE_FACTOR", str(MIN_EASE_FACTOR)))
    pass_threshold: int = int(os.getenv("SRS_PASS_THRESHOLD", "3"))
    first_interval: int = FIRST_INTERVAL_DAYS
    second_interval: int = SECOND_INTERVAL_DAYS
    mastery_repetitions: int = int(os.getenv("SRS_MASTERY_REPETITIONS", "3"))
    mastery_ease_factor: float = float(os.getenv("SRS_MASTERY_EASE_FACTOR", "1.8"))


@dataclass
class StudySettings:
    """Study session settings."""
    max_review_batch: int = int(os.getenv("MAX_REVIEW_BATCH", "50"))
    max_title_length: int = 200
    max_description_length: int = 1000
    max_question_length: int = 500
    max_answer_length: int = 500


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_srs_settings() -> SpacedRepetitionSettings:
    """Get spaced repetition settings."""
    return SpacedRepetitionSettings()


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
    srs: SpacedRepetitionSettings = field(default_factory=get_srs_settings)
    study: StudySettings = field(default_factory=get_study_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.srs.min_ease_factor <= 0:
            raise ValueError("SRS_MIN_EASE_FACTOR must be positive")

        if self.srs.initial_ease_factor < self.srs.min_ease_factor:
            raise ValueError("SRS_INITIAL_EASE_FACTOR cannot be lower than SRS_MIN_EASE_FACTOR")

        if not MIN_QUALITY <= self.srs.pass_threshold <= MAX_QUALITY:
            raise ValueError(f"SRS_PASS_THRESHOLD must be between {MIN_QUALITY} and {MAX_QUALITY}")

        if self.srs.mastery_repetitions < 1:
            raise ValueError("SRS_MASTERY_REPETITIONS must be positive")

        if self.study.max_review_batch < 1:
            raise ValueError("MAX_REVIEW_BATCH must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
