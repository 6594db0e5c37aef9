#!/usr/bin/env python3
"""Pipeline backend: deduplication, generation, media, storage and publishing."""
