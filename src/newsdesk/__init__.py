#!/usr/bin/env python3
"""Newsdesk - resilient content pipeline for a local Hindi news desk."""

__version__ = "1.0.0"
