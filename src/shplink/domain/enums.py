"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the pipeline.
"""

from enum import Enum
from pathlib import Path
from typing import Union


class GeometryKind(str, Enum):
    """Geometry kinds accepted into a layer (GeoJSON type names)."""
    POINT = "Point"
    MULTI_POINT = "MultiPoint"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"


class DiscardReason(str, Enum):
    """Why a record was dropped from its layer."""
    NULL_GEOMETRY = "null_geometry"                 # Null shape or no coordinates
    UNSUPPORTED_GEOMETRY = "unsupported_geometry"   # Shape type outside GeometryKind
    TRANSFORM_FAILED = "transform_failed"           # Reprojection raised


class DatasetStatus(str, Enum):
    """Outcome of processing one dataset."""
    LOADED = "loaded"   # Produced a layer
    EMPTY = "empty"     # Decoded, but no feature survived
    FAILED = "failed"   # DatasetParseError


class ExportFormat(str, Enum):
    """Export format options for pipeline results."""
    GEOJSON = "geojson"     # Single FeatureCollection, layer tagged per feature
    GPKG = "gpkg"           # One table per layer
    FGDB = "fgdb"           # ESRI File Geodatabase

    @classmethod
    def from_extension(cls, path: Union[str, Path]) -> "ExportFormat":
        """Infer the export format from an output path, defaulting to GeoJSON."""
        suffix = Path(path).suffix.lower()
        if suffix == ".gpkg":
            return cls.GPKG
        if suffix in (".gdb", ".fgdb"):
            return cls.FGDB
        return cls.GEOJSON
