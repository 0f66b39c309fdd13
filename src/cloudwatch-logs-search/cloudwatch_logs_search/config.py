import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REGION = 'ap-northeast-1'
DEFAULT_START_TIME = '2022-09-22T00:00:00+09:00'
DEFAULT_END_TIME = '2022-09-22T00:30:00+09:00'

# Values of poll_timeout_seconds that turn the wall-clock limit off
NO_TIMEOUT_VALUES = ('0', 'none')


class SearchConfig(BaseModel):
    """Options for one search run. Fixed once the run starts."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    region: str = Field(
        default_factory=lambda: os.getenv('AWS_REGION', DEFAULT_REGION),
        description='AWS region of the log groups'
    )

    profile: Optional[str] = Field(
        default_factory=lambda: os.getenv('AWS_PROFILE'),
        description='Shared credentials profile name'
    )

    # Query settings
    log_group_name_prefix: str = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_GROUP_PREFIX', '/'),
        description='Only log groups whose name starts with this prefix are searched'
    )

    start_time: str = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_START', DEFAULT_START_TIME),
        description='RFC 3339 start of the query window'
    )

    end_time: str = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_END', DEFAULT_END_TIME),
        description='RFC 3339 end of the query window'
    )

    keyword: str = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_KEYWORD', ''),
        description='Filter applied to @message'
    )

    # Polling settings
    poll_interval_seconds: float = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_POLL_INTERVAL', '10'),
        description='Delay between get_query_results calls'
    )

    max_poll_attempts: Optional[int] = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_MAX_POLL_ATTEMPTS'),
        description='Maximum get_query_results calls per query, None for no cap'
    )

    poll_timeout_seconds: Optional[float] = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_POLL_TIMEOUT', '900'),
        description='Maximum wall-clock seconds to wait for one query, 0 or none for no limit'
    )

    # Execution settings
    max_workers: int = Field(
        default_factory=lambda: os.getenv('LOGS_SEARCH_MAX_WORKERS', '4'),
        description='Log groups searched at the same time'
    )

    fail_fast: bool = Field(
        default=False,
        description='Stop the whole run at the first log group that fails'
    )

    @field_validator('region')
    @classmethod
    def validate_region(cls, v):
        """Validate AWS region name."""
        if not v:
            raise ValueError('AWS region name is required')
        return v

    @field_validator('poll_timeout_seconds', mode='before')
    @classmethod
    def disable_zero_timeout(cls, v):
        """Map 0 and 'none' to None so the timeout can be switched off."""
        if isinstance(v, str) and v.strip().lower() in NO_TIMEOUT_VALUES:
            return None
        if not isinstance(v, bool) and isinstance(v, (int, float)) and v == 0:
            return None
        return v

    @field_validator('poll_interval_seconds', 'poll_timeout_seconds')
    @classmethod
    def validate_positive_seconds(cls, v):
        if v is not None and v <= 0:
            raise ValueError('must be greater than zero')
        return v

    @field_validator('max_poll_attempts', 'max_workers')
    @classmethod
    def validate_positive_count(cls, v):
        if v is not None and v < 1:
            raise ValueError('must be at least 1')
        return v
