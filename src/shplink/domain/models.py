"""
Pipeline Domain Models

Pydantic models for type safety and validation across the pipeline.
Geometry is an explicit tagged union: one model per recognized kind,
discriminated on ``type`` so every traversal site handles each kind.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from .enums import DatasetStatus, DiscardReason

# (x, y) or (x, y, z/m...); only the first two ordinates are ever transformed
Position = tuple[float, ...]


class PointGeometry(BaseModel):
    """Single position."""
    type: Literal["Point"] = "Point"
    coordinates: Position

    class Config:
        """Pydantic configuration."""
        frozen = True


class MultiPointGeometry(BaseModel):
    """Flat sequence of positions."""
    type: Literal["MultiPoint"] = "MultiPoint"
    coordinates: list[Position]

    class Config:
        """Pydantic configuration."""
        frozen = True


class LineStringGeometry(BaseModel):
    """Flat sequence of positions forming one line."""
    type: Literal["LineString"] = "LineString"
    coordinates: list[Position]

    class Config:
        """Pydantic configuration."""
        frozen = True


class MultiLineStringGeometry(BaseModel):
    """Sequence of lines."""
    type: Literal["MultiLineString"] = "MultiLineString"
    coordinates: list[list[Position]]

    class Config:
        """Pydantic configuration."""
        frozen = True


class PolygonGeometry(BaseModel):
    """Sequence of rings, exterior first."""
    type: Literal["Polygon"] = "Polygon"
    coordinates: list[list[Position]]

    class Config:
        """Pydantic configuration."""
        frozen = True


class MultiPolygonGeometry(BaseModel):
    """Sequence of polygons, each a sequence of rings."""
    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: list[list[list[Position]]]

    class Config:
        """Pydantic configuration."""
        frozen = True


Geometry = Annotated[
    Union[
        PointGeometry,
        MultiPointGeometry,
        LineStringGeometry,
        MultiLineStringGeometry,
        PolygonGeometry,
        MultiPolygonGeometry,
    ],
    Field(discriminator="type"),
]


class Feature(BaseModel):
    """One geographic record: geometry plus ordered attribute values."""
    geometry: Geometry = Field(..., description="Tagged geometry")
    properties: dict[str, Any] = Field(default_factory=dict, description="Attribute values in table order")
    record_index: int = Field(0, description="0-based physical record index in the source stream")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def __geo_interface__(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": self.geometry.model_dump(),
            "properties": dict(self.properties),
        }


class Layer(BaseModel):
    """A named, colored collection of features from one dataset."""
    name: str = Field(..., description="Dataset base name")
    features: list[Feature] = Field(default_factory=list, description="Accepted, reprojected features")
    color: str = Field(..., description="Hex color from the layer palette")
    position: int = Field(0, description="0-based ingestion position of the source dataset")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def feature_count(self) -> int:
        return len(self.features)

    @property
    def __geo_interface__(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [feature.__geo_interface__ for feature in self.features],
        }


class Bounds(BaseModel):
    """
    Axis-aligned rectangle in destination degrees.

    When no coordinate was observed the corners stay at the infinite
    sentinels; check ``is_empty`` before using the rectangle.
    """
    south: float = Field(math.inf, description="Minimum latitude")
    west: float = Field(math.inf, description="Minimum longitude")
    north: float = Field(-math.inf, description="Maximum latitude")
    east: float = Field(-math.inf, description="Maximum longitude")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def is_empty(self) -> bool:
        return not all(math.isfinite(v) for v in (self.south, self.west, self.north, self.east))

    def to_leaflet(self) -> list[list[float]]:
        """Corner pairs in Leaflet order: [[south, west], [north, east]]."""
        return [[self.south, self.west], [self.north, self.east]]

    def as_bbox(self) -> tuple[float, float, float, float]:
        """Bounding box as (minx, miny, maxx, maxy)."""
        return (self.west, self.south, self.east, self.north)


class DatasetStats(BaseModel):
    """Per-dataset record counters; merged across datasets at the join point."""
    accepted: int = 0
    null_geometry: int = 0
    unsupported_geometry: int = 0
    transform_failed: int = 0

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def skipped(self) -> int:
        return self.null_geometry + self.unsupported_geometry + self.transform_failed

    @property
    def total(self) -> int:
        return self.accepted + self.skipped

    def record_discard(self, reason: DiscardReason) -> DatasetStats:
        """Return a copy with the counter for ``reason`` incremented."""
        field = reason.value
        return self.model_copy(update={field: getattr(self, field) + 1})

    def merge(self, other: DatasetStats) -> DatasetStats:
        return DatasetStats(
            accepted=self.accepted + other.accepted,
            null_geometry=self.null_geometry + other.null_geometry,
            unsupported_geometry=self.unsupported_geometry + other.unsupported_geometry,
            transform_failed=self.transform_failed + other.transform_failed,
        )


class DiscardRecord(BaseModel):
    """A dropped record as reported to callers."""
    record_index: int
    reason: DiscardReason
    detail: Optional[str] = None

    class Config:
        """Pydantic configuration."""
        frozen = True


class DatasetReport(BaseModel):
    """Diagnostics for one discovered dataset."""
    name: str = Field(..., description="Dataset base name")
    position: int = Field(..., description="0-based discovery position")
    status: DatasetStatus = Field(..., description="Loaded, empty or failed")
    stats: DatasetStats = Field(default_factory=DatasetStats, description="Record counters")
    discarded: list[DiscardRecord] = Field(default_factory=list, description="Dropped records")
    has_attributes: bool = Field(False, description="Whether an attribute table was paired")
    error: Optional[str] = Field(None, description="Parse error message for failed datasets")

    class Config:
        """Pydantic configuration."""
        frozen = True


class PipelineResult(BaseModel):
    """Ordered layers plus the overall bounds of one ingestion call."""
    layers: list[Layer] = Field(default_factory=list, description="Layers in discovery order")
    bounds: Bounds = Field(default_factory=Bounds, description="Bounds over every layer")
    reports: list[DatasetReport] = Field(default_factory=list, description="One report per dataset")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def totals(self) -> DatasetStats:
        totals = DatasetStats()
        for report in self.reports:
            totals = totals.merge(report.stats)
        return totals

    @property
    def feature_count(self) -> int:
        return sum(layer.feature_count for layer in self.layers)

    @property
    def __geo_interface__(self) -> dict[str, Any]:
        features = []
        for layer in self.layers:
            for feature in layer.features:
                item = feature.__geo_interface__
                item["properties"]["layer"] = layer.name
                item["properties"]["color"] = layer.color
                features.append(item)
        return {"type": "FeatureCollection", "features": features}


class DatumShift(BaseModel):
    """Seven-parameter (Helmert) shift to WGS84: metres, arc-seconds, ppm."""
    dx: float = Field(0.0, description="X translation (m)")
    dy: float = Field(0.0, description="Y translation (m)")
    dz: float = Field(0.0, description="Z translation (m)")
    rx: float = Field(0.0, description="X rotation (arc-seconds)")
    ry: float = Field(0.0, description="Y rotation (arc-seconds)")
    rz: float = Field(0.0, description="Z rotation (arc-seconds)")
    ds: float = Field(0.0, description="Scale difference (ppm)")

    class Config:
        """Pydantic configuration."""
        frozen = True

    def as_towgs84(self) -> str:
        return ",".join(f"{v:.15g}" for v in (self.dx, self.dy, self.dz, self.rx, self.ry, self.rz, self.ds))


class ProjectionParams(BaseModel):
    """
    Explicit, immutable projection definition.

    ``proj`` is a PROJ projection name ("sterea", "longlat", ...). Unset
    optional fields are omitted from the generated PROJ string.
    """
    name: str = Field(..., description="Human-readable name, e.g. 'Stereo 70'")
    proj: str = Field(..., description="PROJ projection name")
    ellipsoid: Optional[str] = Field(None, description="PROJ ellipsoid name, e.g. 'krass'")
    datum: Optional[str] = Field(None, description="PROJ datum name, e.g. 'WGS84'")
    lat_0: Optional[float] = Field(None, description="Central latitude (degrees)")
    lon_0: Optional[float] = Field(None, description="Central longitude (degrees)")
    k: Optional[float] = Field(None, description="Scale factor at origin")
    x_0: Optional[float] = Field(None, description="False easting (m)")
    y_0: Optional[float] = Field(None, description="False northing (m)")
    datum_shift: Optional[DatumShift] = Field(None, description="Helmert shift to WGS84")
    units: Optional[str] = Field(None, description="Linear units for projected systems")

    class Config:
        """Pydantic configuration."""
        frozen = True

    def to_proj4(self) -> str:
        parts = [f"+proj={self.proj}"]
        for key in ("lat_0", "lon_0", "k", "x_0", "y_0"):
            value = getattr(self, key)
            if value is not None:
                parts.append(f"+{key}={value:.15g}")
        if self.ellipsoid:
            parts.append(f"+ellps={self.ellipsoid}")
        if self.datum:
            parts.append(f"+datum={self.datum}")
        if self.datum_shift is not None:
            parts.append(f"+towgs84={self.datum_shift.as_towgs84()}")
        if self.units:
            parts.append(f"+units={self.units}")
        parts.append("+no_defs")
        return " ".join(parts)
