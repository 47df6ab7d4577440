"""Синхронизация задач и проектов между Craft и Motion."""

__version__ = "0.1.0"
