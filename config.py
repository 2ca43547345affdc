"""Environment-driven configuration."""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_CACHE_TTL_API_EVENTSOURCE = 600  # 10 minutes


def parse_int(value: Optional[str], default: int, name: str = '') -> int:
    """
    Parse an integer setting, falling back to default on bad input.

    Args:
        value: Raw string from the environment
        default: Value used when missing or malformed
        name: Variable name, for the warning

    Returns:
        Parsed integer or default
    """
    if value is None or value.strip() == '':
        return default
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"Invalid integer for {name or 'setting'}: {value!r}, using {default}")
        return default


def parse_bool(value: Optional[str], default: bool, name: str = '') -> bool:
    if value is None or value.strip() == '':
        return default
    normalized = value.strip().lower()
    if normalized in ('1', 'true', 'yes', 'on'):
        return True
    if normalized in ('0', 'false', 'no', 'off'):
        return False
    logger.warning(f"Invalid boolean for {name or 'setting'}: {value!r}, using {default}")
    return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the fetch entry point."""
    log_level: str = 'INFO'
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    cache_table_name: str = ''
    cache_ttl_api_eventsource: int = DEFAULT_CACHE_TTL_API_EVENTSOURCE
    cache_enabled: bool = True

    @property
    def use_cache(self) -> bool:
        return self.cache_enabled and bool(self.cache_table_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read settings from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Settings instance
        """
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=parse_int(
                env.get('TIMEOUT_SECONDS'), DEFAULT_TIMEOUT_SECONDS, 'TIMEOUT_SECONDS'
            ),
            cache_table_name=env.get('CACHE_TABLE_NAME', ''),
            cache_ttl_api_eventsource=parse_int(
                env.get('CACHE_TTL_API_EVENTSOURCE'),
                DEFAULT_CACHE_TTL_API_EVENTSOURCE,
                'CACHE_TTL_API_EVENTSOURCE'
            ),
            cache_enabled=parse_bool(env.get('CACHE_ENABLED'), True, 'CACHE_ENABLED')
        )


def get_google_api_key() -> Optional[str]:
    """Google API key shared by the Calendar and Sheets sources."""
    return os.environ.get('GOOGLE_CALENDAR_API_KEY') or None
