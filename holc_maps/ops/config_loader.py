"""
Configuration Loader for the HOLC Equity Maps Pipeline

This module provides a centralized way to load and access configuration
settings from a config.yaml file.

Usage:
    from holc_maps.ops import Config

    config = Config()
    holc_path = config.get_input_path('holc')
    grade_col = config.get_column_name('grade')
    target_crs = config.get_system_setting('target_crs')
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"
CONFIG_ENV_VAR = "HOLC_MAPS_CONFIG_PATH"


def _apply_nested_override(base_dict: Dict, override_dict: Dict) -> None:
    """Merge override_dict into base_dict, descending into nested mappings."""
    for key, value in override_dict.items():
        if isinstance(value, dict) and isinstance(base_dict.get(key), dict):
            _apply_nested_override(base_dict[key], value)
        else:
            base_dict[key] = value


class Config:
    """Configuration manager for the HOLC equity analysis pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "project_name": "HOLC Equity Maps",
        "description": "Environmental indicators and biodiversity by HOLC grade",
        "input_files": {},
        "input_layers": {},
        "columns": {
            "grade": "grade",
            "state": "STATE_NAME",
            "county": "CNTY_NAME",
            "year": "year",
        },
        "analysis": {
            "state": None,
            "county": None,
            "year": None,
            "indicators": [],
            "grade_order": ["A", "B", "C", "D"],
            "ungraded_label": "ungraded",
        },
        "system": {
            "target_crs": "EPSG:3310",
        },
        "directories": {
            "output": "output",
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable HOLC_MAPS_CONFIG_PATH
                        2. config.yaml in current directory
                        3. The config.yaml shipped with the package
            overrides: Nested mapping applied on top of the file values
        """
        if config_file is None:
            env_config = os.environ.get(CONFIG_ENV_VAR)
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            else:
                config_file = PACKAGED_CONFIG
                logger.debug("Using packaged default config.yaml")

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        self.config_dir = self.config_path.parent
        logger.debug(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r") as f:
            file_data = yaml.safe_load(f) or {}

        self.data: Dict[str, Any] = copy.deepcopy(self.DEFAULTS)
        _apply_nested_override(self.data, file_data)
        if overrides:
            _apply_nested_override(self.data, overrides)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path (e.g., 'analysis.year')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value: Any = self.data
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key_path.split(".")
        target = self.data
        for key in keys[:-1]:
            if not isinstance(target.get(key), dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value

    def resolve_path(self, path: Union[str, Path]) -> Path:
        """Resolve a path relative to the config file's directory."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return (self.config_dir / path).resolve()

    def get_input_path(self, filename_key: str) -> Path:
        """
        Get full path to an input file.

        Args:
            filename_key: Key in the input_files section (e.g., 'holc')

        Returns:
            Absolute path to the input file
        """
        relative_path = self.get(f"input_files.{filename_key}")
        if not relative_path:
            raise ValueError(f"Input file '{filename_key}' not found in config")
        return self.resolve_path(relative_path)

    def get_input_layer(self, filename_key: str) -> Optional[str]:
        """Layer name for multi-layer inputs (geopackage, geodatabase), if any."""
        return self.get(f"input_layers.{filename_key}")

    def get_column_name(self, column_key: str) -> str:
        """Get a column name from config (defaults included)."""
        column = self.get(f"columns.{column_key}")
        if column is None:
            raise ValueError(f"Column '{column_key}' not found in config or defaults")
        return column

    def get_analysis_setting(self, setting_key: str) -> Any:
        return self.get(f"analysis.{setting_key}")

    def get_system_setting(self, setting_key: str) -> Any:
        return self.get(f"system.{setting_key}")

    def get_output_dir(self, create: bool = True) -> Path:
        """
        Get the output directory for tables, charts and reports.

        Args:
            create: Create the directory if it does not exist

        Returns:
            Absolute path to the output directory
        """
        output_dir = self.resolve_path(self.get("directories.output", "output"))
        if create:
            output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    def validate_input_files(self) -> Dict[str, bool]:
        """Check which configured input files exist on disk."""
        results = {}
        for key in self.get("input_files", {}):
            path = self.get_input_path(key)
            results[key] = path.exists()
            if not results[key]:
                logger.warning(f"⚠️ Input file missing: {key} → {path}")
        return results

    def print_config_summary(self) -> None:
        """Log a summary of the active configuration."""
        logger.info(f"📋 Project: {self.get('project_name')}")
        logger.info(f"📋 Description: {self.get('description')}")
        logger.info(f"📁 Config: {self.config_path}")
        logger.info(f"🌐 Target CRS: {self.get_system_setting('target_crs')}")
        logger.info(
            f"🎯 Jurisdiction: {self.get_analysis_setting('county')}, "
            f"{self.get_analysis_setting('state')}"
        )
        logger.info(f"📅 Observation year: {self.get_analysis_setting('year')}")
        logger.info(f"📊 Indicators: {self.get_analysis_setting('indicators')}")


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Config:
    """
    Load configuration from file.

    Args:
        config_file: Path to configuration file
        overrides: Nested mapping applied on top of the file values

    Returns:
        Config instance
    """
    return Config(config_file, overrides=overrides)
