"""
Operations package for the HOLC Equity Maps pipeline

This package centralizes operational tools:
- Configuration management
- Pipeline orchestration (Click CLI)

The Config class is exposed at the package level for convenient imports:
    from holc_maps.ops import Config
"""

from .config_loader import Config, load_config

__all__ = ["Config", "load_config"]
