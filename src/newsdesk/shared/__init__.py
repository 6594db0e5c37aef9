#!/usr/bin/env python3
"""Shared configuration, types and utilities."""
