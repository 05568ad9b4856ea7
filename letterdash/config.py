"""Runtime settings for the round engine.

Values come from the process environment, optionally seeded from a ``.env``
file. Unparseable numbers fall back to their defaults.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 10
DEFAULT_TARGET_WORD_COUNT = 10
DEFAULT_CACHE_MAX_SIZE = 500
DEFAULT_CACHE_TTL_MS = 600000  # 10 minutes
DEFAULT_ERROR_HISTORY_SIZE = 100


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default)) or str(default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default
    if value < minimum:
        logger.warning(f"Ignoring out-of-range {name}={value}; using {default}")
        return default
    return value


def _env_flag(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, 'true' if default else 'false')).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class GeneratorConfig:
    max_retries: int = DEFAULT_MAX_RETRIES
    default_target_word_count: int = DEFAULT_TARGET_WORD_COUNT


@dataclass
class CacheConfig:
    max_size: int = DEFAULT_CACHE_MAX_SIZE
    ttl: int = DEFAULT_CACHE_TTL_MS  # milliseconds


@dataclass
class Settings:
    environment: str = 'Development'
    log_level: str = 'INFO'
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    storage_backend: str = 'memory'  # memory | json | dynamodb
    storage_file: str = 'game_data/letterdash.json'
    dynamodb_table: str = 'letterdash_storage'
    aws_region: Optional[str] = None
    error_history_size: int = DEFAULT_ERROR_HISTORY_SIZE
    network_probe_url: Optional[str] = None
    enable_cloudwatch: bool = False


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """Build Settings from the environment, loading ``env_file`` (or ./.env) first."""
    env_path = Path(env_file) if env_file else Path.cwd() / '.env'
    if env_path.exists():
        logger.info(f"Loading environment from {env_path.absolute()}")
        load_dotenv(env_path)

    backend = os.getenv('STORAGE_BACKEND', 'memory').strip().lower()
    if backend not in ('memory', 'json', 'dynamodb'):
        logger.warning(f"Unknown STORAGE_BACKEND={backend!r}; using memory")
        backend = 'memory'

    return Settings(
        environment=os.getenv('ENVIRONMENT', 'Development'),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
        generator=GeneratorConfig(
            max_retries=_env_int('MAX_RETRIES', DEFAULT_MAX_RETRIES),
            default_target_word_count=_env_int('DEFAULT_TARGET_WORD_COUNT', DEFAULT_TARGET_WORD_COUNT),
        ),
        cache=CacheConfig(
            max_size=_env_int('CACHE_MAX_SIZE', DEFAULT_CACHE_MAX_SIZE),
            ttl=_env_int('CACHE_TTL_MS', DEFAULT_CACHE_TTL_MS),
        ),
        storage_backend=backend,
        storage_file=os.getenv('STORAGE_FILE', 'game_data/letterdash.json'),
        dynamodb_table=os.getenv('DYNAMODB_TABLE', 'letterdash_storage'),
        aws_region=os.getenv('AWS_REGION') or None,
        error_history_size=_env_int('ERROR_HISTORY_SIZE', DEFAULT_ERROR_HISTORY_SIZE),
        network_probe_url=os.getenv('NETWORK_PROBE_URL') or None,
        enable_cloudwatch=_env_flag('ENABLE_CLOUDWATCH'),
    )
