"""
Configuration loading for the Sleep Tracker service.
"""

from sleeptracker.config.config_manager import AppSettings, ConfigManager, load_settings

__all__ = ['AppSettings', 'ConfigManager', 'load_settings']
