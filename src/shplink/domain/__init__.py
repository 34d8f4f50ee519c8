"""
Domain Models and Types

This module contains the core domain models and enumerations used throughout the pipeline.
These typed models ensure data integrity and provide clear interfaces for the pipeline components.

Models:
- Geometry: Tagged union of the six recognized geometry kinds
- Feature: Geometry plus attribute values
- Layer: Named, colored feature collection from one dataset
- Bounds: Overall rectangle in destination degrees
- PipelineResult: Layers, bounds and per-dataset reports
- ProjectionParams / DatumShift: Explicit projection definitions

Enums:
- GeometryKind: Recognized geometry kinds
- DiscardReason: Why a record was dropped
- DatasetStatus: Outcome of one dataset (loaded, empty, failed)
- ExportFormat: Export format options (geojson, gpkg, fgdb)
"""

from .enums import DatasetStatus, DiscardReason, ExportFormat, GeometryKind
from .models import (
    Bounds,
    DatasetReport,
    DatasetStats,
    DatumShift,
    DiscardRecord,
    Feature,
    Geometry,
    Layer,
    LineStringGeometry,
    MultiLineStringGeometry,
    MultiPointGeometry,
    MultiPolygonGeometry,
    PipelineResult,
    PointGeometry,
    PolygonGeometry,
    Position,
    ProjectionParams,
)

__all__ = [
    "Bounds", "DatasetReport", "DatasetStats", "DatumShift", "DiscardRecord",
    "Feature", "Geometry", "Layer", "PipelineResult", "Position", "ProjectionParams",
    "PointGeometry", "MultiPointGeometry", "LineStringGeometry",
    "MultiLineStringGeometry", "PolygonGeometry", "MultiPolygonGeometry",
    "GeometryKind", "DiscardReason", "DatasetStatus", "ExportFormat",
]
