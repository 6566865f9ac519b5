"""
Application configuration manager.
Defaults, optionally overridden by a JSON file, then by environment variables.
"""

import json
import logging
import os
from pathlib import Path

from summarybot.core.constants import (
    CONFIG_ENV_VAR, DEFAULT_WORK_DIR, DEFAULT_TASK_INTERVAL_SEC, DEFAULT_YTDLP,
    DEFAULT_PRIMARY_LANGUAGE, DEFAULT_SECONDARY_LANGUAGE, DEFAULT_SUMMARY_LANGUAGE,
    OPENAI_API_BASE, OPENAI_DEFAULT_MODEL,
)

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'telegram_token': '',
    'openai_api_key': '',
    'openai_model': OPENAI_DEFAULT_MODEL,
    'openai_base_url': OPENAI_API_BASE,
    'ytdlp_path': DEFAULT_YTDLP,
    'environment': 'development',
    'task_interval_sec': DEFAULT_TASK_INTERVAL_SEC,
    'work_dir': str(DEFAULT_WORK_DIR),
    'primary_language': DEFAULT_PRIMARY_LANGUAGE,
    'secondary_language': DEFAULT_SECONDARY_LANGUAGE,
    'summary_language': DEFAULT_SUMMARY_LANGUAGE,
    'cookies_path': '',
}

_ENV_KEYS = {
    'telegram_token': 'TELEGRAM_BOT_TOKEN',
    'openai_api_key': 'OPENAI_API_KEY',
    'openai_model': 'OPENAI_MODEL',
    'openai_base_url': 'OPENAI_BASE_URL',
    'ytdlp_path': 'YT_DLP_PATH',
    'environment': 'APP_ENV',
    'task_interval_sec': 'TASK_INTERVAL_SECONDS',
    'work_dir': 'WORK_DIR',
    'primary_language': 'PRIMARY_SUB_LANG',
    'secondary_language': 'SECONDARY_SUB_LANG',
    'summary_language': 'SUMMARY_LANGUAGE',
    'cookies_path': 'YT_COOKIES_PATH',
}

_REQUIRED = ('telegram_token', 'openai_api_key')


class ConfigError(Exception):
    """Raised when required configuration is missing."""


class AppConfig:
    """Runtime configuration: defaults → JSON file → environment."""

    def __init__(self, config_path: Path | None = None, environ: dict | None = None):
        env = os.environ if environ is None else environ
        path = config_path or env.get(CONFIG_ENV_VAR)
        self.path = Path(path) if path else None
        self._env = env
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk and environment, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path and self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    self.set(key, value)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config %s: %s", self.path, e)

        for key, env_name in _ENV_KEYS.items():
            value = self._env.get(env_name, '').strip()
            if value:
                self.set(key, value)

    def require(self):
        """Raise ConfigError if any required value is missing."""
        missing = [_ENV_KEYS[k] for k in _REQUIRED if not self._data.get(k)]
        if missing:
            raise ConfigError(f"missing required configuration: {', '.join(missing)}")

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'task_interval_sec':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid task_interval_sec %r — using default", value)
                return DEFAULT_TASK_INTERVAL_SEC
            if value <= 0:
                return DEFAULT_TASK_INTERVAL_SEC
            return value

        if isinstance(value, str):
            value = value.strip()

        if key in ('primary_language', 'secondary_language'):
            return value.lower() if value else _DEFAULTS[key]

        return value

    @property
    def telegram_token(self) -> str:
        return self._data['telegram_token']

    @property
    def openai_api_key(self) -> str:
        return self._data['openai_api_key']

    @property
    def task_interval_sec(self) -> int:
        return self._data['task_interval_sec']

    @property
    def work_dir(self) -> Path:
        return Path(self._data['work_dir'])

    @property
    def cookies_path(self) -> Path | None:
        value = self._data.get('cookies_path')
        return Path(value) if value else None

    @property
    def is_development(self) -> bool:
        return str(self._data.get('environment', '')).lower() == 'development'
