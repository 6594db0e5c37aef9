#!/usr/bin/env python3
"""Configuration loading."""

from .config_loader import ConfigLoader, get_env_key_pool
from .pipeline_config import DedupConfig, GenerationConfig, MediaConfig, PipelineConfig

__all__ = [
    'ConfigLoader',
    'get_env_key_pool',
    'DedupConfig',
    'GenerationConfig',
    'MediaConfig',
    'PipelineConfig',
]
