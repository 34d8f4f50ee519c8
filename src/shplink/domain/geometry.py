"""
Geometry traversal helpers.

Every site that walks coordinates (decoder validation, reprojection,
bounds accumulation) goes through the functions in this module, which
dispatch once per geometry kind and fail loudly on anything unhandled.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .enums import GeometryKind
from .models import (
    Geometry,
    LineStringGeometry,
    MultiLineStringGeometry,
    MultiPointGeometry,
    MultiPolygonGeometry,
    PointGeometry,
    PolygonGeometry,
    Position,
)

SequenceTransform = Callable[[Sequence[Position]], list[Position]]

GEOMETRY_ADAPTER: TypeAdapter = TypeAdapter(Geometry)

RECOGNIZED_KINDS = frozenset(kind.value for kind in GeometryKind)


def map_position_sequences(geometry: Geometry, transform: SequenceTransform) -> Geometry:
    """
    Rebuild ``geometry`` with every innermost position sequence passed through ``transform``.

    Nesting is preserved exactly: a Point is treated as a one-element
    sequence, MultiPoint/LineString as one sequence, Polygon/MultiLineString
    as one sequence per ring or line, MultiPolygon as one per ring per
    polygon. ``transform`` must return as many positions as it receives.

    Args:
        geometry: Source geometry
        transform: Maps a sequence of positions to a new list of positions

    Returns:
        New geometry of the same kind

    Raises:
        TypeError: If the geometry kind is not handled
    """
    if isinstance(geometry, PointGeometry):
        coordinates: Any = transform([geometry.coordinates])[0]
    elif isinstance(geometry, (MultiPointGeometry, LineStringGeometry)):
        coordinates = transform(geometry.coordinates)
    elif isinstance(geometry, (PolygonGeometry, MultiLineStringGeometry)):
        coordinates = [transform(part) for part in geometry.coordinates]
    elif isinstance(geometry, MultiPolygonGeometry):
        coordinates = [[transform(ring) for ring in polygon] for polygon in geometry.coordinates]
    else:
        raise TypeError(f"Unhandled geometry kind: {type(geometry).__name__}")

    return geometry.model_copy(update={"coordinates": coordinates})


def iter_positions(geometry: Geometry) -> Iterator[Position]:
    """Yield every position of ``geometry`` in storage order."""
    if isinstance(geometry, PointGeometry):
        yield geometry.coordinates
    elif isinstance(geometry, (MultiPointGeometry, LineStringGeometry)):
        yield from geometry.coordinates
    elif isinstance(geometry, (PolygonGeometry, MultiLineStringGeometry)):
        for part in geometry.coordinates:
            yield from part
    elif isinstance(geometry, MultiPolygonGeometry):
        for polygon in geometry.coordinates:
            for ring in polygon:
                yield from ring
    else:
        raise TypeError(f"Unhandled geometry kind: {type(geometry).__name__}")


def count_positions(geometry: Geometry) -> int:
    return sum(1 for _ in iter_positions(geometry))


def nesting_shape(geometry: Geometry) -> Any:
    """
    Describe the nesting of ``geometry`` as nested lengths.

    Point -> 1, LineString -> n, Polygon -> [n_ring, ...],
    MultiPolygon -> [[n_ring, ...], ...]. Two geometries with equal shapes
    have identical topology.
    """
    if isinstance(geometry, PointGeometry):
        return 1
    if isinstance(geometry, (MultiPointGeometry, LineStringGeometry)):
        return len(geometry.coordinates)
    if isinstance(geometry, (PolygonGeometry, MultiLineStringGeometry)):
        return [len(part) for part in geometry.coordinates]
    if isinstance(geometry, MultiPolygonGeometry):
        return [[len(ring) for ring in polygon] for polygon in geometry.coordinates]
    raise TypeError(f"Unhandled geometry kind: {type(geometry).__name__}")


def has_coordinates(value: Any) -> bool:
    """True when a raw GeoJSON ``coordinates`` value holds at least one position."""
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        if not value:
            return False
        if isinstance(value[0], (int, float)):
            return True
        return any(has_coordinates(item) for item in value)
    return False


def geometry_from_geo_interface(mapping: Optional[dict[str, Any]]) -> Geometry:
    """
    Validate a GeoJSON-like geometry mapping into the tagged union.

    Raises:
        ValueError: If the mapping is missing, of an unrecognized kind,
            or structurally invalid
    """
    if not mapping or mapping.get("type") not in RECOGNIZED_KINDS:
        kind = mapping.get("type") if mapping else None
        raise ValueError(f"Unrecognized geometry type: {kind}")

    try:
        return GEOMETRY_ADAPTER.validate_python(mapping)
    except ValidationError as e:
        raise ValueError(f"Invalid {mapping['type']} geometry: {e}") from e
