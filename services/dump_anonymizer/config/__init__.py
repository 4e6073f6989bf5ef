"""Configuration package for the dump anonymizer."""

from .settings import (
    GeneratorSettings,
    LoggingSettings,
    PipelineSettings,
    Settings,
    get_settings,
)

__all__ = [
    "GeneratorSettings",
    "LoggingSettings",
    "PipelineSettings",
    "Settings",
    "get_settings",
]
