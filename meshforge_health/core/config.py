"""
Configuration management for MeshForge Network Health.
Handles loading and saving the INI configuration file.
"""

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .queries import DEFAULT_RELIABILITY_LIMIT, MAX_RELIABILITY_LIMIT, SIGNAL_QUALITY_LIMIT
from .windowing import MAX_BUCKETS, WEEK_SECONDS

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class WebConfig:
    """Web server configuration."""
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False


@dataclass
class DatabaseConfig:
    """Telemetry database configuration."""
    path: str = ""  # Auto-generate if empty


@dataclass
class MetricsConfig:
    """Lookback windows and result caps for the health queries."""
    week_seconds: int = WEEK_SECONDS
    default_limit: int = DEFAULT_RELIABILITY_LIMIT
    max_limit: int = MAX_RELIABILITY_LIMIT
    signal_quality_limit: int = SIGNAL_QUALITY_LIMIT
    max_buckets: int = MAX_BUCKETS


@dataclass
class LoggingConfig:
    level: str = "INFO"

    @property
    def numeric_level(self) -> int:
        level = self.level.upper()
        if level not in LOG_LEVELS:
            return logging.INFO
        return getattr(logging, level)


class Config:
    """Main configuration class for MeshForge Network Health."""

    DEFAULT_CONFIG_PATHS = [
        Path.home() / ".config" / "meshforge-health" / "config.ini",
        Path.cwd() / "meshforge_health.ini",
        Path("/etc/meshforge-health/config.ini"),
    ]

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._parser = configparser.ConfigParser()

        self.web = WebConfig()
        self.database = DatabaseConfig()
        self.metrics = MetricsConfig()
        self.logging = LoggingConfig()

        if self.config_path and self.config_path.exists():
            self.load()

    def _find_config(self) -> Optional[Path]:
        """Find an existing config file, or the default path for a new one."""
        for path in self.DEFAULT_CONFIG_PATHS:
            if path.exists():
                return path
        return self.DEFAULT_CONFIG_PATHS[0]

    def load(self) -> bool:
        """Load configuration from file. Returns False and keeps defaults on error."""
        if not self.config_path or not self.config_path.exists():
            return False

        try:
            self._parser.read(self.config_path)

            if self._parser.has_section('web'):
                self.web.host = self._parser.get('web', 'host', fallback='127.0.0.1')
                self.web.port = self._parser.getint('web', 'port', fallback=8080)
                self.web.debug = self._parser.getboolean('web', 'debug', fallback=False)

            if self._parser.has_section('database'):
                self.database.path = self._parser.get('database', 'path', fallback='')

            if self._parser.has_section('metrics'):
                self.metrics.week_seconds = self._parser.getint('metrics', 'week_seconds', fallback=WEEK_SECONDS)
                self.metrics.default_limit = self._parser.getint(
                    'metrics', 'default_limit', fallback=DEFAULT_RELIABILITY_LIMIT
                )
                self.metrics.max_limit = self._parser.getint('metrics', 'max_limit', fallback=MAX_RELIABILITY_LIMIT)
                self.metrics.signal_quality_limit = self._parser.getint(
                    'metrics', 'signal_quality_limit', fallback=SIGNAL_QUALITY_LIMIT
                )
                self.metrics.max_buckets = self._parser.getint('metrics', 'max_buckets', fallback=MAX_BUCKETS)

            if self._parser.has_section('logging'):
                self.logging.level = self._parser.get('logging', 'level', fallback='INFO')

            return True
        except (configparser.Error, OSError, ValueError) as e:
            logger.error("Error loading config %s: %s", self.config_path, e)
            return False

    def save(self) -> bool:
        """Save configuration to file."""
        try:
            if self.config_path:
                self.config_path.parent.mkdir(parents=True, exist_ok=True)

            sections = {
                'web': {
                    'host': self.web.host,
                    'port': str(self.web.port),
                    'debug': str(self.web.debug),
                },
                'database': {'path': self.database.path},
                'metrics': {
                    'week_seconds': str(self.metrics.week_seconds),
                    'default_limit': str(self.metrics.default_limit),
                    'max_limit': str(self.metrics.max_limit),
                    'signal_quality_limit': str(self.metrics.signal_quality_limit),
                    'max_buckets': str(self.metrics.max_buckets),
                },
                'logging': {'level': self.logging.level},
            }
            for section, values in sections.items():
                if not self._parser.has_section(section):
                    self._parser.add_section(section)
                for key, value in values.items():
                    self._parser.set(section, key, value)

            if self.config_path:
                with open(self.config_path, 'w') as f:
                    self._parser.write(f)
                os.chmod(self.config_path, 0o600)

            return True
        except (configparser.Error, OSError) as e:
            logger.error("Error saving config %s: %s", self.config_path, e)
            return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "web": {
                "host": self.web.host,
                "port": self.web.port,
                "debug": self.web.debug,
            },
            "database": {"path": str(self.get_database_path())},
            "metrics": {
                "week_seconds": self.metrics.week_seconds,
                "default_limit": self.metrics.default_limit,
                "max_limit": self.metrics.max_limit,
                "signal_quality_limit": self.metrics.signal_quality_limit,
                "max_buckets": self.metrics.max_buckets,
            },
            "logging": {"level": self.logging.level},
        }

    def get_database_path(self) -> Path:
        """Get path for the telemetry database."""
        if self.database.path:
            return Path(self.database.path)
        # Default: ~/.config/meshforge-health/telemetry.db
        return Path.home() / ".config" / "meshforge-health" / "telemetry.db"
