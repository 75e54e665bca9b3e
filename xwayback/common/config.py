"""Configuration file loading and management"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from xwayback.common.errors import UsageError

DEFAULT_COMPOSITOR_PATH = "/usr/libexec/wayback-compositor"
DEFAULT_XWAYLAND_PATH = "/usr/bin/Xwayland"

ENV_COMPOSITOR_PATH = "WAYBACK_COMPOSITOR_PATH"
ENV_XWAYLAND_PATH = "XWAYLAND_PATH"
ENV_OUTPUT = "WAYBACK_OUTPUT"
ENV_CONFIG = "XWAYBACK_CONFIG"


@dataclass
class PathsConfig:
    """Collaborator executable locations"""
    compositor: str = DEFAULT_COMPOSITOR_PATH
    xwayland: str = DEFAULT_XWAYLAND_PATH


@dataclass
class SessionConfig:
    """Session wiring settings"""
    output: Optional[str] = None  # Output override label (make or "make model")
    window_manager: bool = True
    terminate_delay: int = 3


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"


@dataclass
class Config:
    """Complete launcher configuration"""
    paths: PathsConfig
    session: SessionConfig
    logging: LoggingConfig


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "~/.config/xwayback/config.yml",
        "/etc/xwayback/config.yml",
    ]

    @staticmethod
    def configFile_find(environ: Mapping[str, str]) -> Optional[Path]:
        """
        Find configuration file in standard locations

        Args:
            environ: Environment consulted for XWAYBACK_CONFIG

        Returns:
            Path to config file, or None if not found
        """
        candidates = list(ConfigLoader.DEFAULT_CONFIG_PATHS)
        explicit: Optional[str] = environ.get(ENV_CONFIG)
        if explicit:
            candidates.insert(0, explicit)
        for config_path in candidates:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def path_get(section: Dict[str, Any], key: str, default: str) -> str:
        """Read an executable path; it must be a non-empty string"""
        value = section.get(key, default)
        if not isinstance(value, str) or not value:
            raise ValueError(f"paths.{key} must be a non-empty string, got {value!r}")
        return value

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Every section and key is optional; missing values keep their defaults.
        Present values are type-checked, never coerced.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object

        Raises:
            ValueError: If a value has the wrong type
        """
        paths_data = data.get("paths") or {}
        paths = PathsConfig(
            compositor=ConfigLoader.path_get(paths_data, "compositor", DEFAULT_COMPOSITOR_PATH),
            xwayland=ConfigLoader.path_get(paths_data, "xwayland", DEFAULT_XWAYLAND_PATH),
        )

        session_data = data.get("session") or {}
        output = session_data.get("output")
        if output is not None and not isinstance(output, str):
            raise ValueError(f"session.output must be a string, got {output!r}")
        window_manager = session_data.get("window_manager", True)
        if not isinstance(window_manager, bool):
            raise ValueError(f"session.window_manager must be true or false, got {window_manager!r}")
        terminate_delay = session_data.get("terminate_delay", 3)
        if isinstance(terminate_delay, bool) or not isinstance(terminate_delay, int):
            raise ValueError(f"session.terminate_delay must be an integer, got {terminate_delay!r}")
        session = SessionConfig(
            output=output,
            window_manager=window_manager,
            terminate_delay=terminate_delay,
        )

        logging_data = data.get("logging") or {}
        logging = LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
        )

        return Config(paths=paths, session=session, logging=logging)

    @staticmethod
    def config_load(
        file_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Config:
        """
        Load configuration from file, falling back to built-in defaults

        Args:
            file_path: Optional path to config file. If None, searches standard locations.
            environ: Environment used for the search (defaults to os.environ)

        Returns:
            Parsed Config object

        Raises:
            UsageError: If the config file is unreadable or malformed
        """
        if environ is None:
            environ = os.environ
        if file_path is None:
            file_path = ConfigLoader.configFile_find(environ)
            if file_path is None:
                return ConfigLoader.config_parse({})

        try:
            data = ConfigLoader.yaml_load(file_path)
            return ConfigLoader.config_parse(data)
        except (OSError, ValueError, TypeError, AttributeError, yaml.YAMLError) as e:
            raise UsageError(f"Invalid config file {file_path}: {e}") from e

    @staticmethod
    def configWithEnvironment_load(
        file_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Config:
        """
        Load configuration and apply environment overrides

        Environment variables take precedence over the config file:
        WAYBACK_COMPOSITOR_PATH, XWAYLAND_PATH and WAYBACK_OUTPUT.

        Args:
            file_path: Optional path to config file
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Config object with overrides applied
        """
        if environ is None:
            environ = os.environ
        config = ConfigLoader.config_load(file_path, environ)

        if environ.get(ENV_COMPOSITOR_PATH):
            config.paths.compositor = environ[ENV_COMPOSITOR_PATH]
        if environ.get(ENV_XWAYLAND_PATH):
            config.paths.xwayland = environ[ENV_XWAYLAND_PATH]
        if ENV_OUTPUT in environ:
            config.session.output = environ[ENV_OUTPUT]

        return config
