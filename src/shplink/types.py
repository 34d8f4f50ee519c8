"""
Type definitions for the shapefile ingestion pipeline.

This module provides the transient value objects handed between pipeline
stages, the per-record outcome types used for skip-and-count bookkeeping,
and the ingestion exception hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Optional, Union

from .domain.enums import DiscardReason

if TYPE_CHECKING:
    from .domain.models import DatasetReport, Feature


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file: declared filename plus its binary content."""
    filename: str
    content: bytes

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> UploadedFile:
        """Read an upload from disk, keeping the file's own name."""
        path = Path(path)
        return cls(filename=path.name, content=path.read_bytes())

    @classmethod
    def from_stream(cls, stream: BinaryIO, filename: Optional[str] = None) -> UploadedFile:
        """
        Read an upload from a binary file-like object.

        Args:
            stream: Object with a ``read()`` returning bytes
            filename: Declared filename; defaults to the stream's ``name``

        Raises:
            ValueError: If no filename is given and the stream has none
        """
        name = filename or getattr(stream, "name", None)
        if not name:
            raise ValueError("A filename is required to classify the upload")
        return cls(filename=Path(str(name)).name, content=stream.read())


@dataclass(frozen=True)
class RawDataset:
    """
    One logical shapefile found in an upload.

    ``read_error`` is set when the archive entry (or its attribute table)
    could not be decompressed; decoding such a dataset fails.
    """
    name: str
    position: int
    geometry_bytes: bytes
    attribute_bytes: Optional[bytes] = None
    encoding: Optional[str] = None
    source_path: Optional[str] = None
    read_error: Optional[str] = None

    @property
    def has_attributes(self) -> bool:
        return self.attribute_bytes is not None


@dataclass(frozen=True)
class Accepted:
    """A record that produced a valid feature."""
    feature: Feature


@dataclass(frozen=True)
class Discarded:
    """A record dropped from its layer, with the reason it was dropped."""
    record_index: int
    reason: DiscardReason
    detail: Optional[str] = None


RecordOutcome = Union[Accepted, Discarded]


# Ingestion exception hierarchy
class IngestError(Exception):
    """Base exception for shapefile ingestion."""
    pass


class UnsupportedFormat(IngestError):
    """Upload is neither a bare shapefile nor a readable archive."""
    def __init__(self, filename: str, message: Optional[str] = None):
        self.filename = filename
        super().__init__(
            message or f"Unsupported file format: {filename}. Use a .shp file or a .zip archive"
        )


class EmptyArchive(IngestError):
    """Archive holds no geometry (.shp) entries."""
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Archive {filename} contains no .shp files")


class DatasetParseError(IngestError):
    """One dataset's geometry or attribute stream is structurally unreadable."""
    def __init__(self, dataset_name: str, message: str):
        self.dataset_name = dataset_name
        super().__init__(f"Could not parse dataset '{dataset_name}': {message}")


class GeometryTransformError(IngestError):
    """One feature's coordinates could not be reprojected."""
    def __init__(self, dataset_name: str, record_index: int, message: str):
        self.dataset_name = dataset_name
        self.record_index = record_index
        super().__init__(
            f"Could not reproject record {record_index} of '{dataset_name}': {message}"
        )


class NoValidLayers(IngestError):
    """Every dataset failed or produced zero accepted features."""
    def __init__(self, reports: Optional[list[DatasetReport]] = None):
        self.reports = list(reports or [])
        super().__init__(
            f"No valid layer could be loaded from the upload "
            f"({len(self.reports)} dataset(s) attempted)"
        )
