"""Configuration loader for settings and stack environment detection."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "STACK_MANAGER_CONFIG_DIR"
SETTINGS_FILE = "settings.yaml"
COMPOSE_FILENAME = "docker-compose.yml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Global application settings."""
    stack_file: str = ""  # Empty means detect from environment
    stack_home: str = ""
    docker_binary: str = "docker"
    refresh_interval: float = 2.0  # Seconds between status polls
    settle_delay: float = 2.0  # Wait after a compose operation before re-reading status
    stream_timeout: float = 30.0  # Max seconds to wait for one line of compose output
    stop_timeout: int = 10  # Seconds docker waits before killing a container
    docker_timeout: float = 5.0
    compose_timeout: float = 120.0  # Only used by the synchronous compose calls
    output_limit: int = 500  # Lines of compose output kept in memory
    log_level: str = "INFO"
    log_file: str = ""

    @field_validator(
        'refresh_interval', 'settle_delay', 'stream_timeout',
        'docker_timeout', 'compose_timeout',
    )
    @classmethod
    def validate_positive(cls, v):
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator('stop_timeout', 'output_limit')
    @classmethod
    def validate_positive_int(cls, v):
        """Counts must be positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return level


@dataclass
class StackEnv:
    """Resolved location of the compose stack."""
    stack_file: Path  # Absolute path to docker-compose.yml
    stack_home: Path  # Directory holding the stack (and its demo template)


def detect_stack_env(settings: Optional[Settings] = None) -> StackEnv:
    """Resolve STACK_FILE and STACK_HOME.

    Precedence:
        1. Values from settings.yaml
        2. STACK_FILE environment variable (STACK_HOME from env or its directory)
        3. STACK_HOME environment variable + docker-compose.yml
        4. The current working directory
    """
    settings = settings or Settings()

    stack_file = settings.stack_file or os.environ.get("STACK_FILE", "")
    stack_home = settings.stack_home or os.environ.get("STACK_HOME", "")

    if stack_file:
        if not stack_home:
            stack_home = str(Path(stack_file).expanduser().parent)
    else:
        if not stack_home:
            stack_home = str(Path.cwd())
        stack_file = str(Path(stack_home).expanduser() / COMPOSE_FILENAME)

    env = StackEnv(
        stack_file=Path(stack_file).expanduser().absolute(),
        stack_home=Path(stack_home).expanduser().absolute(),
    )
    logger.debug("Stack environment: file=%s home=%s", env.stack_file, env.stack_home)
    return env


def default_config_dir() -> Path:
    """Config directory from the environment or the user's config home."""
    env_dir = os.environ.get(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".config" / "stack-manager"


class ConfigLoader:
    """Loads and manages configuration files."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize config loader with config directory."""
        if config_dir is None:
            config_dir = default_config_dir()
        self.config_dir = Path(config_dir)
        self._settings: Optional[Settings] = None
        self._ensure_config_dir()

    def _ensure_config_dir(self) -> None:
        """Ensure config directory exists."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML file from the config directory."""
        filepath = self.config_dir / filename
        if not filepath.exists():
            return {}

        with open(filepath) as f:
            return yaml.safe_load(f) or {}

    def _save_yaml(self, filename: str, data: dict) -> None:
        """Save data to a YAML file in the config directory."""
        filepath = self.config_dir / filename
        with open(filepath, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)

    @property
    def log_path(self) -> Path:
        """Default location of the application log."""
        return self.config_dir / "stack-manager.log"

    def config_exists(self) -> bool:
        """Check if the settings file exists."""
        return (self.config_dir / SETTINGS_FILE).exists()

    def load_settings(self, reload: bool = False) -> Settings:
        """Load global settings."""
        if self._settings is None or reload:
            data = self._load_yaml(SETTINGS_FILE)
            self._settings = Settings(**data)
        return self._settings

    def save_settings(self, settings: Settings) -> None:
        """Save global settings."""
        data = settings.model_dump()
        self._save_yaml(SETTINGS_FILE, data)
        self._settings = settings

    def update_settings(self, **kwargs) -> Settings:
        """Update specific settings fields."""
        settings = self.load_settings()
        updated = settings.model_copy(
            update={k: v for k, v in kwargs.items() if k in Settings.model_fields}
        )
        # model_copy skips validation
        updated = Settings(**updated.model_dump())
        self.save_settings(updated)
        return updated


# Global config loader instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader(config_dir: Optional[Path] = None) -> ConfigLoader:
    """Get or create the global config loader instance."""
    global _config_loader
    if _config_loader is None or config_dir is not None:
        _config_loader = ConfigLoader(config_dir)
    return _config_loader
