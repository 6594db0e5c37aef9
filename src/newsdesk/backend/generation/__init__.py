#!/usr/bin/env python3
"""Article generation: provider adapters, prompt building, parsing and the fallback chain."""

from .orchestrator import GenerationOrchestrator
from .prompts import build_article_prompt, build_system_prompt, time_context
from .providers import GeminiProvider, GenerationProvider, GroqProvider
from .response_parser import extract_json_object, parse_generation, strip_code_fences

__all__ = [
    'GenerationOrchestrator',
    'GenerationProvider',
    'GeminiProvider',
    'GroqProvider',
    'build_article_prompt',
    'build_system_prompt',
    'time_context',
    'extract_json_object',
    'parse_generation',
    'strip_code_fences',
]
