# -*- coding: utf-8 -*-
"""
Configuration
Runtime settings for the marker rewriter, the API server and the source fetcher.
Values come from environment variables so the server and CLI share one source.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class HashpConfig:
    """Settings shared by every stage of the instrumentation pipeline."""

    marker: str = '#p'
    debug_prefix: str = '__debug_'
    log_function: str = 'print'
    temp_name: str = 'temp'

    host: str = '0.0.0.0'
    port: int = 5001
    debug: bool = False

    fetch_timeout: float = 20.0
    github_token: Optional[str] = None

    @property
    def empty_call_label(self) -> str:
        return 'empty debug call'

    def message_for(self, label: str) -> str:
        """Fixed text passed to the log function ahead of the value."""
        return f"{self.marker} {label} => "

    @classmethod
    def from_env(cls) -> 'HashpConfig':
        """Build a config from HASHP_* environment variables."""
        return cls(
            marker=os.getenv('HASHP_MARKER', cls.marker),
            debug_prefix=os.getenv('HASHP_DEBUG_PREFIX', cls.debug_prefix),
            log_function=os.getenv('HASHP_LOG_FUNCTION', cls.log_function),
            temp_name=os.getenv('HASHP_TEMP_NAME', cls.temp_name),
            host=os.getenv('HASHP_HOST', cls.host),
            port=int(os.getenv('HASHP_PORT', str(cls.port))),
            debug=_env_flag('HASHP_DEBUG'),
            fetch_timeout=float(os.getenv('HASHP_FETCH_TIMEOUT', str(cls.fetch_timeout))),
            github_token=os.getenv('GITHUB_TOKEN') or None,
        )


DEFAULT_CONFIG = HashpConfig()
