"""
shplink - Shapefile ingestion for web map rendering

Turns an uploaded shapefile (or a ZIP archive of shapefiles) in the
Romanian Stereo 70 grid into WGS84 layers ready for a web map.

Example:
    from shplink import ingest_upload
    result = ingest_upload("parcele.zip")
    result.bounds.to_leaflet()
"""

from .config.settings import ConfigurationError, PipelineSettings
from .domain.models import Bounds, Feature, Layer, PipelineResult
from .pipeline.ingest import IngestionPipeline, ingest_upload
from .types import (
    DatasetParseError,
    EmptyArchive,
    GeometryTransformError,
    IngestError,
    NoValidLayers,
    UnsupportedFormat,
    UploadedFile,
)

__version__ = "0.1.0"

__all__ = [
    "Bounds",
    "ConfigurationError",
    "DatasetParseError",
    "EmptyArchive",
    "Feature",
    "GeometryTransformError",
    "IngestError",
    "IngestionPipeline",
    "Layer",
    "NoValidLayers",
    "PipelineResult",
    "PipelineSettings",
    "UnsupportedFormat",
    "UploadedFile",
    "ingest_upload",
]
