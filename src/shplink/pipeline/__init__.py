"""
Shapefile Ingestion Pipeline Components

Extract -> Decode -> Reproject -> Assemble, driven per dataset by
IngestionPipeline, with the overall bounds computed at the join point.

Components:
- extract: ArchiveExtractor for bare .shp and .zip uploads
- decode: ShapefileDecoder for geometry records and attribute rows (pyshp)
- reproject: Reprojector between explicit projections (pyproj)
- bounds: BoundsAccumulator for the overall extent
- assemble: LayerAssembler for named, colored layers
- export: Exporter for multi-format export (GeoJSON, GPKG, FGDB)
"""

from .assemble import LayerAssembler
from .bounds import BoundsAccumulator, compute_bounds
from .decode import ShapefileDecoder
from .export import Exporter
from .extract import ArchiveExtractor
from .ingest import IngestionPipeline, ingest_upload
from .reproject import Reprojector

__all__ = [
    "ArchiveExtractor",
    "ShapefileDecoder",
    "Reprojector",
    "BoundsAccumulator",
    "LayerAssembler",
    "IngestionPipeline",
    "Exporter",
    "compute_bounds",
    "ingest_upload",
]
