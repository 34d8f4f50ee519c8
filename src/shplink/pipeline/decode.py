"""
ShapefileDecoder - Binary Records to Features

Reads one RawDataset's .shp stream (and optional .dbf table) with pyshp,
pairs geometry and attribute rows by physical record order, and classifies
every record as accepted or discarded. Structural corruption of the stream
fails the whole dataset with DatasetParseError.
"""

from __future__ import annotations

import codecs
import datetime
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import shapefile

from ..domain.enums import DiscardReason
from ..domain.geometry import geometry_from_geo_interface, has_coordinates
from ..domain.models import DatasetStats, Feature
from ..types import Accepted, DatasetParseError, Discarded, RawDataset, RecordOutcome

logger = logging.getLogger(__name__)

# Marks the end of the attribute table; deleted rows come back as None
_END_OF_TABLE = object()

# pyshp shape type codes that map onto the six recognized geometry kinds
SUPPORTED_SHAPE_TYPES = frozenset({
    shapefile.POINT, shapefile.POINTZ, shapefile.POINTM,
    shapefile.MULTIPOINT, shapefile.MULTIPOINTZ, shapefile.MULTIPOINTM,
    shapefile.POLYLINE, shapefile.POLYLINEZ, shapefile.POLYLINEM,
    shapefile.POLYGON, shapefile.POLYGONZ, shapefile.POLYGONM,
})


@dataclass
class DecodeResult:
    """Classified records of one dataset, in physical record order."""
    dataset_name: str
    outcomes: list[RecordOutcome] = field(default_factory=list)
    has_attributes: bool = False

    @property
    def features(self) -> list[Feature]:
        return [o.feature for o in self.outcomes if isinstance(o, Accepted)]

    @property
    def discarded(self) -> list[Discarded]:
        return [o for o in self.outcomes if isinstance(o, Discarded)]

    @property
    def stats(self) -> DatasetStats:
        return tally(self.outcomes)


def tally(outcomes: list[RecordOutcome]) -> DatasetStats:
    """Count accepted records and discards per reason."""
    stats = DatasetStats()
    accepted = 0
    for outcome in outcomes:
        if isinstance(outcome, Accepted):
            accepted += 1
        else:
            stats = stats.record_discard(outcome.reason)
    return stats.model_copy(update={"accepted": accepted})


def resolve_encoding(codepage: Optional[str], default: str) -> str:
    """
    Turn a .cpg code page declaration into a Python codec name.

    Accepts codec names ("UTF-8"), bare Windows code pages ("1250") and
    ESRI "ANSI 1252" style values. Unknown values fall back to ``default``.
    """
    if not codepage:
        return default

    candidate = codepage.strip()
    if candidate.upper().startswith("ANSI "):
        candidate = "cp" + candidate[5:].strip()
    elif candidate.isdigit():
        candidate = "cp" + candidate

    try:
        codecs.lookup(candidate)
    except LookupError:
        logger.warning(f"Unknown code page '{codepage}', using {default}")
        return default
    return candidate


def normalize_value(value: Any) -> Any:
    """Reduce a .dbf cell to a JSON-friendly scalar."""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _clean_coordinates(value: Any) -> Any:
    # Positions keep x, y and any defined extra ordinates; no-data M values are None
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], (int, float)):
        return tuple(float(v) for v in value if v is not None)
    if isinstance(value, (list, tuple)):
        return [_clean_coordinates(item) for item in value]
    return value


class ShapefileDecoder:
    """
    Decode shapefile byte streams into classified records.

    Attribute rows are paired with geometry records purely by position;
    no join key is checked.
    """

    def __init__(self, encoding: str = "utf-8", encoding_errors: str = "replace"):
        """
        Initialize decoder.

        Args:
            encoding: Default .dbf text encoding when no .cpg is present
            encoding_errors: Codec error handling (strict, replace, ignore)
        """
        self.encoding = encoding
        self.encoding_errors = encoding_errors

    def decode(self, dataset: RawDataset) -> DecodeResult:
        """
        Read every record of ``dataset``.

        Args:
            dataset: Raw geometry and optional attribute bytes

        Returns:
            DecodeResult with one outcome per physical record

        Raises:
            DatasetParseError: If either stream is structurally unreadable
        """
        if dataset.read_error:
            raise DatasetParseError(dataset.name, dataset.read_error)

        result = DecodeResult(dataset_name=dataset.name, has_attributes=dataset.has_attributes)

        try:
            reader = self._open(dataset)
        except Exception as e:
            raise DatasetParseError(dataset.name, f"invalid shapefile header: {e}") from e

        with reader:
            try:
                self._read_records(dataset, reader, result)
            except Exception as e:
                raise DatasetParseError(
                    dataset.name, f"unreadable record after {len(result.outcomes)} record(s): {e}"
                ) from e

        stats = result.stats
        logger.info(
            f"Layer \"{dataset.name}\": {stats.accepted} valid features, {stats.skipped} skipped"
        )
        return result

    def _open(self, dataset: RawDataset) -> shapefile.Reader:
        kwargs: dict[str, Any] = {
            "shp": io.BytesIO(dataset.geometry_bytes),
            "encoding": resolve_encoding(dataset.encoding, self.encoding),
            "encodingErrors": self.encoding_errors,
        }
        if dataset.attribute_bytes is not None:
            kwargs["dbf"] = io.BytesIO(dataset.attribute_bytes)
        return shapefile.Reader(**kwargs)

    def _read_records(self, dataset: RawDataset, reader: shapefile.Reader, result: DecodeResult) -> None:
        # Deleted rows are yielded as None so row i always pairs with shape i
        rows = reader.iterRecords(deleted_as_None=True) if dataset.attribute_bytes is not None else None
        rows_exhausted = False

        for index, shape in enumerate(reader.iterShapes()):
            properties: dict[str, Any] = {}
            if rows is not None and not rows_exhausted:
                row = next(rows, _END_OF_TABLE)
                if row is _END_OF_TABLE:
                    rows_exhausted = True
                    logger.warning(
                        f"Attribute table of '{dataset.name}' ended at record {index}; "
                        f"remaining features get empty properties"
                    )
                elif row is None:
                    logger.debug(f"Attribute row {index} of '{dataset.name}' is marked deleted")
                else:
                    properties = {key: normalize_value(value) for key, value in row.as_dict().items()}

            outcome = self._classify(dataset.name, index, shape, properties)
            result.outcomes.append(outcome)

    def _classify(self, dataset_name: str, index: int, shape: shapefile.Shape, properties: dict[str, Any]) -> RecordOutcome:
        if shape.shapeType == shapefile.NULL:
            logger.debug(f"Skipping record {index} in {dataset_name}: null geometry")
            return Discarded(index, DiscardReason.NULL_GEOMETRY)

        if shape.shapeType not in SUPPORTED_SHAPE_TYPES:
            type_name = shapefile.SHAPETYPE_LOOKUP.get(shape.shapeType, str(shape.shapeType))
            logger.debug(f"Skipping record {index} in {dataset_name}: unsupported shape type {type_name}")
            return Discarded(index, DiscardReason.UNSUPPORTED_GEOMETRY, type_name)

        try:
            mapping = dict(shape.__geo_interface__)
        except Exception as e:
            logger.debug(f"Skipping record {index} in {dataset_name}: {e}")
            return Discarded(index, DiscardReason.UNSUPPORTED_GEOMETRY, str(e))

        if not has_coordinates(mapping.get("coordinates")):
            logger.debug(f"Skipping record {index} in {dataset_name}: empty geometry")
            return Discarded(index, DiscardReason.NULL_GEOMETRY, "no coordinates")

        mapping["coordinates"] = _clean_coordinates(mapping["coordinates"])
        try:
            geometry = geometry_from_geo_interface(mapping)
        except ValueError as e:
            logger.debug(f"Skipping record {index} in {dataset_name}: {e}")
            return Discarded(index, DiscardReason.UNSUPPORTED_GEOMETRY, str(e))

        return Accepted(Feature(geometry=geometry, properties=properties, record_index=index))
