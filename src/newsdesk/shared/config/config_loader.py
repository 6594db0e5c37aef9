#!/usr/bin/env python3
"""Unified Configuration Loader - centralized utility for loading YAML configuration files."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)
load_dotenv('.env.local')
load_dotenv()


class ConfigLoader:
    """Unified configuration loader for YAML files."""

    _config_cache: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def _get_config_dir() -> Path:
        """Get the configuration directory path."""
        config_dir_str = os.getenv('CONFIG_DIR')
        if config_dir_str:
            config_dir = Path(config_dir_str)
        else:
            config_dir = Path(__file__).parent

        if not config_dir.exists():
            raise FileNotFoundError(f"Configuration directory not found: {config_dir}")
        return config_dir

    @classmethod
    def _load_file(cls, file_path: Path) -> Dict[str, Any]:
        """Load a YAML configuration file."""
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load configuration file {file_path}: {e}")
            raise RuntimeError(f"Could not load configuration from {file_path}: {e}") from e

    @classmethod
    def load_config(cls, config_name: str = "app") -> Dict[str, Any]:
        """Load configuration by name."""
        if config_name in cls._config_cache:
            return cls._config_cache[config_name]

        config_dir = cls._get_config_dir()

        for ext in ['.yaml', '.yml']:
            config_path = config_dir / f"{config_name}{ext}"
            if config_path.exists():
                config = cls._load_file(config_path)
                cls._config_cache[config_name] = config
                logger.debug(f"Loaded {config_name} configuration from {config_path}")
                return config

        raise FileNotFoundError(f"No YAML configuration file found for '{config_name}' in {config_dir}")

    @classmethod
    def get(cls, key: str, default: Any = None, config_name: str = "app") -> Any:
        """Get a setting using dot notation (e.g., 'dedup.threshold')."""
        config = cls.load_config(config_name)
        value = config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the configuration cache."""
        cls._config_cache.clear()


def _section(name: str) -> Dict[str, Any]:
    try:
        section = ConfigLoader.get(name, {}, "app")
    except (FileNotFoundError, RuntimeError) as e:
        logger.error(f"Failed to load {name} config: {e}")
        return {}
    return section if isinstance(section, dict) else {}


def get_dedup_config() -> Dict[str, Any]:
    """Load topic deduplication settings."""
    return _section('dedup')


def get_generation_config() -> Dict[str, Any]:
    """Load generation provider chain settings."""
    return _section('generation')


def get_media_config() -> Dict[str, Any]:
    """Load image/audio resolver settings."""
    return _section('media')


def get_pipeline_config() -> Dict[str, Any]:
    """Load run-level pipeline settings."""
    return _section('pipeline')


def get_env_key_pool(name: str, max_numbered: int = 10) -> List[str]:
    """Collect a credential pool: NAME_1..NAME_n first, then the bare NAME.

    Blank values are ignored and duplicates dropped, order preserved.
    """
    keys: List[str] = []
    candidates = [os.getenv(f"{name}_{i}") for i in range(1, max_numbered + 1)]
    candidates.append(os.getenv(name))
    for value in candidates:
        if value and value.strip() and value.strip() not in keys:
            keys.append(value.strip())
    return keys
