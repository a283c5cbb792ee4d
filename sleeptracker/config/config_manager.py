# sleeptracker/config/config_manager.py
import logging
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

from sleeptracker.utils.constants import FALLBACK_TIMEZONE, MAX_RANGE_DAYS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config/config.yaml'

DEFAULTS = {
    'app': {
        'title': 'Sleep Tracker API',
        'log_level': 'INFO',
    },
    'storage': {
        'data_dir': 'data/sleeptracker',
    },
    'time': {
        'default_timezone': FALLBACK_TIMEZONE,
    },
}


class AppSettings(BaseModel):
    """Resolved application settings threaded into services"""
    title: str = 'Sleep Tracker API'
    log_level: str = 'INFO'
    data_dir: str = 'data/sleeptracker'
    default_timezone: str = FALLBACK_TIMEZONE
    max_range_days: int = Field(MAX_RANGE_DAYS, ge=1)


class ConfigManager:
    """Central configuration manager"""

    def __init__(self, config_path=None):
        self.config_path = config_path or os.environ.get('SLEEPTRACKER_CONFIG', DEFAULT_CONFIG_PATH)
        self.config = self._load_config()

    def _load_config(self):
        """Load configuration from file, falling back to built-in defaults"""
        if not os.path.exists(self.config_path):
            logger.info(f"Config file {self.config_path} not found, using defaults")
            return _merge({}, DEFAULTS)

        with open(self.config_path, 'r') as file:
            loaded = yaml.safe_load(file) or {}
        return _merge(loaded, DEFAULTS)

    def get(self, key, default=None):
        """Get configuration value"""
        # Support nested keys with dot notation
        keys = key.split('.')
        value = self.config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def settings(self) -> AppSettings:
        """Resolve settings, applying environment overrides on top of the file"""
        return AppSettings(
            title=self.get('app.title', 'Sleep Tracker API'),
            log_level=os.environ.get('SLEEPTRACKER_LOG_LEVEL', self.get('app.log_level', 'INFO')),
            data_dir=os.environ.get('SLEEPTRACKER_DATA_DIR', self.get('storage.data_dir')),
            default_timezone=os.environ.get('APP_TZ', self.get('time.default_timezone', FALLBACK_TIMEZONE)),
            max_range_days=self.get('api.max_range_days', MAX_RANGE_DAYS),
        )


def _merge(loaded: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Fill keys missing from the loaded config with defaults (recursively)"""
    merged = dict(loaded)
    for key, value in defaults.items():
        if isinstance(value, dict):
            merged[key] = _merge(merged.get(key) or {}, value)
        elif key not in merged:
            merged[key] = value
    return merged


def load_settings(config_path: Optional[str] = None) -> AppSettings:
    return ConfigManager(config_path).settings()
