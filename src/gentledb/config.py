"""Store configuration with YAML and environment loading."""

import logging
import os
from pathlib import Path
from typing import Literal, TypeVar

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="ConfigModel")


class ConfigModel(BaseModel):
    """Base model with YAML loading/saving capabilities."""

    @classmethod
    def from_yaml(cls: type[T], path: Path) -> T:
        """
        Load and validate configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated configuration model instance

        Raises:
            ConfigError: On file not found, invalid YAML, or validation errors
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            cls._handle_yaml_error(e, path)
        except OSError as e:
            raise ConfigError(f"Error reading configuration file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {path.name} must be a mapping")

        try:
            config = cls(**data)
        except ValidationError as e:
            cls._handle_validation_error(e, path)
        logger.debug(f"Loaded {cls.__name__} from {path}")
        return config

    @classmethod
    def load_or_default(cls: type[T], path: Path | None, **defaults) -> T:
        """
        Load from YAML or create with default values.

        Args:
            path: Optional path to YAML configuration file
            **defaults: Default values if file not provided

        Returns:
            Configuration model instance
        """
        if path and Path(path).exists():
            return cls.from_yaml(path)
        return cls(**defaults)

    def to_yaml(self, path: Path):
        """
        Write configuration to YAML file.

        Args:
            path: Path to write YAML file
        """
        with open(path, "w") as f:
            yaml.safe_dump(
                self.model_dump(mode="json", exclude_unset=False),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    @classmethod
    def _handle_validation_error(cls, error: ValidationError, path: Path):
        """Collect validation errors into one ConfigError."""
        lines = [f"Invalid {cls.__name__} configuration: {path.name}"]
        for err in error.errors():
            field_path = " → ".join(str(loc) for loc in err["loc"])
            if "missing" in err["type"]:
                lines.append(f"  Missing required field: {field_path}")
            else:
                lines.append(f"  {field_path}: {err['msg']}")
        raise ConfigError("\n".join(lines)) from error

    @classmethod
    def _handle_yaml_error(cls, error: yaml.YAMLError, path: Path):
        """Handle YAML parsing errors."""
        message = f"Invalid YAML syntax in: {path.name}"
        # Try to extract line number from error
        if hasattr(error, "problem_mark"):
            mark = error.problem_mark
            message += f" (line {mark.line + 1}, column {mark.column + 1})"
        raise ConfigError(message) from error


class StoreConfig(ConfigModel):
    """Configuration for opening a GentleDB store.

    Loaded from YAML (``StoreConfig.from_yaml``) or from environment
    variables prefixed with GENTLEDB_ (``StoreConfig.from_env``).
    """

    backend: Literal["local", "memory"] = "local"
    directory: Path | None = None  # None means ~/.gentledb
    chunk_size: int = Field(default=64 * 1024, gt=0)
    staging_max_age_seconds: int = Field(default=24 * 3600, ge=0)

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Load configuration from environment variables.

        - GENTLEDB_BACKEND -> backend
        - GENTLEDB_DIR -> directory
        - GENTLEDB_CHUNK_SIZE -> chunk_size
        - GENTLEDB_STAGING_MAX_AGE -> staging_max_age_seconds

        Raises:
            ConfigError: If a variable holds an invalid value
        """
        env = {
            "backend": os.environ.get("GENTLEDB_BACKEND"),
            "directory": os.environ.get("GENTLEDB_DIR"),
            "chunk_size": os.environ.get("GENTLEDB_CHUNK_SIZE"),
            "staging_max_age_seconds": os.environ.get("GENTLEDB_STAGING_MAX_AGE"),
        }
        values = {key: value for key, value in env.items() if value}
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid GENTLEDB_* environment: {e}") from e
