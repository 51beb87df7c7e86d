"""
Configuration Module

Loads settings from config.env / .env and the environment.
"""

import os
import logging
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CDN_HOST = "cdn.woda.dev"
DEFAULT_VERIFY_TIMEOUT = 15.0


@dataclass
class Config:
    """Runtime settings."""

    cdn_host: str = DEFAULT_CDN_HOST
    verify_timeout: float = DEFAULT_VERIFY_TIMEOUT
    log_level: str = "INFO"


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Load configuration from environment.

    Args:
        env_file: Optional explicit env file; defaults to config.env, then .env

    Returns:
        Config instance
    """
    if env_file:
        load_dotenv(env_file)
    elif os.path.exists('config.env'):
        load_dotenv('config.env')
    else:
        load_dotenv()  # Try .env

    timeout = os.getenv('BUNNY_VERIFY_TIMEOUT', '')
    try:
        verify_timeout = float(timeout) if timeout else DEFAULT_VERIFY_TIMEOUT
    except ValueError:
        logger.warning(f"Ignoring invalid BUNNY_VERIFY_TIMEOUT: {timeout}")
        verify_timeout = DEFAULT_VERIFY_TIMEOUT

    return Config(
        cdn_host=os.getenv('BUNNY_CDN_HOST', DEFAULT_CDN_HOST).strip(),
        verify_timeout=verify_timeout,
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )


def validate_config(config: Config) -> List[str]:
    """
    Validate configuration.

    Returns:
        List of problems, empty when the config is usable
    """
    problems = []

    if not config.cdn_host:
        problems.append("BUNNY_CDN_HOST is empty")
    elif '://' in config.cdn_host or '/' in config.cdn_host:
        problems.append(f"BUNNY_CDN_HOST must be a bare hostname, got: {config.cdn_host}")

    if config.verify_timeout <= 0:
        problems.append("BUNNY_VERIFY_TIMEOUT must be positive")

    return problems
