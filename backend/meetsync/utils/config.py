"""
MeetSync Configuration Management
Handles environment variables, collaborator endpoints, and scheduling policy settings
"""

import os
from dataclasses import dataclass
from pathlib import Path
import logging

import pytz

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@dataclass
class SchedulingConfig:
    """Slot search and working-hours policy"""
    timezone: str
    workday_start_hour: int
    workday_end_hour: int
    slot_granularity_minutes: int
    horizon_days: int
    max_alternatives: int
    default_meeting_hour: int
    default_duration_minutes: int
    fetch_timeout_seconds: float
    request_timeout_seconds: float

    @classmethod
    def from_env(cls) -> 'SchedulingConfig':
        return cls(
            timezone=os.getenv('SCHEDULING_TIMEZONE', 'UTC'),
            workday_start_hour=int(os.getenv('WORKDAY_START_HOUR', '9')),
            workday_end_hour=int(os.getenv('WORKDAY_END_HOUR', '17')),
            slot_granularity_minutes=int(os.getenv('SLOT_GRANULARITY_MINUTES', '60')),
            horizon_days=int(os.getenv('SEARCH_HORIZON_DAYS', '10')),
            max_alternatives=int(os.getenv('MAX_ALTERNATIVES', '3')),
            default_meeting_hour=int(os.getenv('DEFAULT_MEETING_HOUR', '10')),
            default_duration_minutes=int(os.getenv('DEFAULT_DURATION_MINUTES', '60')),
            fetch_timeout_seconds=float(os.getenv('FETCH_TIMEOUT_SECONDS', '5')),
            request_timeout_seconds=float(os.getenv('REQUEST_TIMEOUT_SECONDS', '30'))
        )

    @property
    def tzinfo(self):
        return pytz.timezone(self.timezone)

@dataclass
class CalendarStoreConfig:
    """LMS REST API that owns users, events and meetings"""
    api_url: str
    api_token: str
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> 'CalendarStoreConfig':
        return cls(
            api_url=os.getenv('LMS_API_URL', ''),
            api_token=os.getenv('LMS_API_TOKEN', ''),
            timeout_seconds=float(os.getenv('LMS_API_TIMEOUT', '10'))
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_url.strip())

@dataclass
class TextGenerationConfig:
    """Optional chat-completions endpoint used to phrase explanations"""
    api_url: str
    api_key: str
    model: str
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> 'TextGenerationConfig':
        return cls(
            api_url=os.getenv('OPENAI_API_URL', 'https://api.openai.com/v1'),
            api_key=os.getenv('OPENAI_API_KEY', ''),
            model=os.getenv('OPENAI_MODEL', 'gpt-4o'),
            timeout_seconds=float(os.getenv('OPENAI_TIMEOUT', '8'))
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

@dataclass
class APIConfig:
    """FastAPI Application Configuration"""
    host: str
    port: int
    debug: bool
    cors_origins: list[str]
    log_level: str

    @classmethod
    def from_env(cls) -> 'APIConfig':
        return cls(
            host=os.getenv('API_HOST', '0.0.0.0'),
            port=int(os.getenv('API_PORT', '8000')),
            debug=os.getenv('DEBUG', 'False').lower() == 'true',
            cors_origins=os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(','),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper()
        )

class Config:
    """Main Configuration Manager"""

    def __init__(self):
        self.load_environment()

        # Load all configuration sections
        self.scheduling = SchedulingConfig.from_env()
        self.calendar_store = CalendarStoreConfig.from_env()
        self.text_generation = TextGenerationConfig.from_env()
        self.api = APIConfig.from_env()

        self.validate_config()

    def load_environment(self) -> None:
        """Load environment variables from .env file if it exists"""
        env_path = Path(__file__).parent.parent / 'config' / '.env'

        if env_path.exists():
            with open(env_path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        os.environ.setdefault(key.strip(), value.strip())
            logger.info(f"Loaded environment from {env_path}")

    def validate_config(self) -> None:
        """Validate scheduling policy values"""
        errors = validate_scheduling_config(self.scheduling)

        if self.api.log_level not in ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG'):
            errors.append(f"LOG_LEVEL '{self.api.log_level}' is not a logging level")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"- {error}" for error in errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        if not self.calendar_store.enabled:
            logger.warning("LMS_API_URL not set - calendar data will come from the in-memory store")
        if not self.text_generation.enabled:
            logger.info("OPENAI_API_KEY not set - explanations use built-in templates")

        logger.info("Configuration validation passed")

def validate_scheduling_config(scheduling: SchedulingConfig) -> list[str]:
    """Return a list of problems with a scheduling policy (empty when valid)"""
    errors = []

    try:
        pytz.timezone(scheduling.timezone)
    except pytz.UnknownTimeZoneError:
        errors.append(f"SCHEDULING_TIMEZONE '{scheduling.timezone}' is not a known timezone")

    if not 0 <= scheduling.workday_start_hour < scheduling.workday_end_hour <= 24:
        errors.append("WORKDAY_START_HOUR must be before WORKDAY_END_HOUR (0-24)")
    if not scheduling.workday_start_hour <= scheduling.default_meeting_hour < scheduling.workday_end_hour:
        errors.append("DEFAULT_MEETING_HOUR must fall inside working hours")
    if scheduling.slot_granularity_minutes <= 0:
        errors.append("SLOT_GRANULARITY_MINUTES must be positive")
    if scheduling.horizon_days <= 0:
        errors.append("SEARCH_HORIZON_DAYS must be positive")
    if scheduling.max_alternatives < 0:
        errors.append("MAX_ALTERNATIVES cannot be negative")
    if scheduling.default_duration_minutes <= 0:
        errors.append("DEFAULT_DURATION_MINUTES must be positive")
    if scheduling.fetch_timeout_seconds <= 0 or scheduling.request_timeout_seconds <= 0:
        errors.append("Timeouts must be positive")

    return errors

# Global configuration instance
config = Config()

# Export commonly used configurations
__all__ = [
    'config',
    'SchedulingConfig',
    'CalendarStoreConfig',
    'TextGenerationConfig',
    'APIConfig',
    'Config',
    'validate_scheduling_config'
]
