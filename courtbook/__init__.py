"""Lesson booking engine for a single tennis coach."""

__version__ = "0.1.0"
