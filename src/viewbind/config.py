"""
Configuration Management for viewbind Engines

🔧 Unified Configuration System:
This module provides configuration for binding engines, supporting different
environments plus loading from dictionaries, JSON/YAML files and
environment variables.
"""

from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field, asdict
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
import logging
import os

from . import constants

class Environment(Enum):
    """Engine environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"

@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

@dataclass
class AttributeConfig:
    """Attribute vocabulary recognized in markup"""
    bind: str = constants.BIND
    option_text: str = constants.OPTION_TEXT
    highlight_minus: str = constants.HIGHLIGHT_MINUS
    check_field: str = constants.CHECK_FIELD
    display: str = constants.DISPLAY
    hide: str = constants.HIDE
    enable: str = constants.ENABLE
    disable: str = constants.DISABLE
    hide_callback: str = constants.DISPLAY_HIDE_CALLBACK
    unchecked_value: str = constants.UNCHECKED_VALUE
    display_only_class: str = constants.DISPLAY_ONLY
    maintain_disabled_class: str = constants.MAINTAIN_DISABLED

    @property
    def control_attributes(self) -> tuple:
        """Visibility/enablement attributes, highest priority first"""
        return (self.display, self.hide, self.enable, self.disable)

@dataclass
class EngineConfig:
    """Complete engine configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # Propagation
    debounce_delay: float = 0.05  # seconds
    propagate_change_events: bool = False
    sync_on_start: bool = True

    # Markup handling
    auto_id_prefix: str = constants.DEFAULT_ID_PREFIX
    template_id_marker: str = constants.TEMPLATE_ID_MARKER
    readonly_opacity: str = constants.NON_SELECTABLE_OPACITY

    attributes: AttributeConfig = field(default_factory=AttributeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'EngineConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.debug = True
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.debounce_delay = 0.01
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.debug = False
            config.logging.level = "INFO"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'EngineConfig':
        """Create configuration from dictionary"""
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        config = cls(environment=environment)

        for key in ("debug", "debounce_delay", "propagate_change_events", "sync_on_start",
                    "auto_id_prefix", "template_id_marker", "readonly_opacity"):
            if key in config_dict:
                setattr(config, key, config_dict[key])

        # Update nested configs
        for section in ("attributes", "logging"):
            target = getattr(config, section)
            for key, value in (config_dict.get(section) or {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

        return config

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'EngineConfig':
        """Load configuration from a JSON or YAML file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix == '.json':
            import json
            with open(config_path) as f:
                config_dict = json.load(f)
        elif config_path.suffix in ('.yml', '.yaml'):
            import yaml
            with open(config_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> 'EngineConfig':
        """Create configuration from environment variables"""
        env_name = os.getenv('VIEWBIND_ENV', 'development')
        config = cls.for_environment(Environment(env_name))

        if os.getenv('VIEWBIND_DEBUG'):
            config.debug = os.getenv('VIEWBIND_DEBUG').lower() == 'true'

        if os.getenv('VIEWBIND_DEBOUNCE_DELAY'):
            config.debounce_delay = float(os.getenv('VIEWBIND_DEBOUNCE_DELAY'))

        if os.getenv('VIEWBIND_PROPAGATE_CHANGE_EVENTS'):
            config.propagate_change_events = os.getenv('VIEWBIND_PROPAGATE_CHANGE_EVENTS').lower() == 'true'

        if os.getenv('VIEWBIND_LOG_LEVEL'):
            config.logging.level = os.getenv('VIEWBIND_LOG_LEVEL').upper()

        if os.getenv('VIEWBIND_LOG_FILE'):
            config.logging.file_path = os.getenv('VIEWBIND_LOG_FILE')

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        data = asdict(self)
        data["environment"] = self.environment.value
        return data


def configure_logging(config: Optional[LoggingConfig] = None, debug: Optional[bool] = None) -> logging.Logger:
    """
    Apply a LoggingConfig to the `viewbind` logger hierarchy.

    Without arguments the global EngineConfig is used; its `debug` flag
    (or an explicit `debug=True`) forces the DEBUG level.
    """
    if config is None:
        engine_config = get_config()
        config = engine_config.logging
        if debug is None:
            debug = engine_config.debug
    logger = logging.getLogger("viewbind")
    logger.setLevel("DEBUG" if debug else config.level.upper())

    formatter = logging.Formatter(config.format)
    if config.file_path:
        handler = RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    return logger

# Global configuration management
_current_config: Optional[EngineConfig] = None

def set_config(config: EngineConfig):
    """Set the global configuration"""
    global _current_config
    _current_config = config

def get_config() -> EngineConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = EngineConfig.from_environment()

    return _current_config

def configure_from_file(config_path: Union[str, Path]) -> EngineConfig:
    """Configure engines from file"""
    config = EngineConfig.from_file(config_path)
    set_config(config)
    return config

def configure_from_dict(config_dict: Dict[str, Any]) -> EngineConfig:
    """Configure engines from dictionary"""
    config = EngineConfig.from_dict(config_dict)
    set_config(config)
    return config

# Export main components
__all__ = [
    "EngineConfig", "Environment", "LoggingConfig", "AttributeConfig",
    "configure_logging", "set_config", "get_config",
    "configure_from_file", "configure_from_dict",
]
