"""
Configuration module for the shapefile ingestion pipeline.
Environment-driven settings plus built-in projection definitions.
"""

from .projections import DEFAULT_LAYER_COLORS, STEREO_70, WGS84
from .settings import (
    Config,
    ConfigurationError,
    PaletteConfig,
    PipelineSettings,
    ProcessingConfig,
)

__all__ = [
    'Config',
    'ConfigurationError',
    'PaletteConfig',
    'PipelineSettings',
    'ProcessingConfig',
    'DEFAULT_LAYER_COLORS',
    'STEREO_70',
    'WGS84',
]
