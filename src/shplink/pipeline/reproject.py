"""
Reprojector - Projected Grid to Geographic Coordinates

Transforms feature coordinates from an explicit source projection
(Stereo 70 by default) to an explicit destination projection (WGS84
longitude/latitude by default) with pyproj. Projection parameters are
injected per instance; nothing is registered globally.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Sequence

from pyproj import CRS, Transformer
from pyproj.enums import TransformDirection
from pyproj.exceptions import CRSError, ProjError

from ..config.projections import STEREO_70, WGS84
from ..config.settings import ConfigurationError
from ..domain.geometry import map_position_sequences
from ..domain.models import Feature, Geometry, Position, ProjectionParams
from ..types import GeometryTransformError

logger = logging.getLogger(__name__)


class Reprojector:
    """
    Coordinate transformer between two explicit projection definitions.

    Each thread lazily gets its own pyproj Transformer, so one instance can
    be shared by a dataset worker pool.
    """

    def __init__(self, source: ProjectionParams = STEREO_70, destination: ProjectionParams = WGS84):
        """
        Initialize reprojector and validate both projection definitions.

        Args:
            source: Projection of the input coordinates (x/y metres)
            destination: Projection of the output coordinates

        Raises:
            ConfigurationError: If either definition is rejected by PROJ
        """
        self.source = source
        self.destination = destination

        try:
            self._source_crs = CRS.from_proj4(source.to_proj4())
            self._destination_crs = CRS.from_proj4(destination.to_proj4())
        except CRSError as e:
            raise ConfigurationError(f"Invalid projection definition: {e}") from e

        self._local = threading.local()
        # Build eagerly once so configuration errors surface at construction
        self._build_transformer()

        logger.debug(f"Reprojector ready: {source.name} -> {destination.name}")

    def _build_transformer(self) -> Transformer:
        try:
            transformer = Transformer.from_crs(self._source_crs, self._destination_crs, always_xy=True)
        except (CRSError, ProjError) as e:
            raise ConfigurationError(
                f"No transformation from {self.source.name} to {self.destination.name}: {e}"
            ) from e
        self._local.transformer = transformer
        return transformer

    @property
    def transformer(self) -> Transformer:
        transformer = getattr(self._local, "transformer", None)
        if transformer is None:
            transformer = self._build_transformer()
        return transformer

    def transform_positions(self, positions: Sequence[Position]) -> list[Position]:
        """
        Forward-transform a flat sequence of positions.

        Extra ordinates beyond x/y are carried over unchanged.

        Raises:
            ProjError: If PROJ rejects a coordinate
            ValueError: If a result is not finite
        """
        return self._transform(positions, TransformDirection.FORWARD)

    def inverse_positions(self, positions: Sequence[Position]) -> list[Position]:
        """Transform destination positions back into the source projection."""
        return self._transform(positions, TransformDirection.INVERSE)

    def _transform(self, positions: Sequence[Position], direction: TransformDirection) -> list[Position]:
        if not positions:
            return []

        xs = [p[0] for p in positions]
        ys = [p[1] for p in positions]
        out_x, out_y = self.transformer.transform(xs, ys, errcheck=True, direction=direction)

        transformed = []
        for position, x, y in zip(positions, out_x, out_y):
            if not (math.isfinite(x) and math.isfinite(y)):
                raise ValueError(f"position {tuple(position[:2])} is outside the projection domain")
            transformed.append((float(x), float(y), *position[2:]))
        return transformed

    def reproject_geometry(self, geometry: Geometry) -> Geometry:
        return map_position_sequences(geometry, self.transform_positions)

    def reproject(self, feature: Feature, dataset_name: str = "") -> Feature:
        """
        Return ``feature`` with every coordinate in the destination projection.

        Topology, properties and record index are preserved.

        Args:
            feature: Decoded feature in source coordinates
            dataset_name: Owning dataset, for error reporting

        Raises:
            GeometryTransformError: If any coordinate cannot be transformed
        """
        try:
            geometry = self.reproject_geometry(feature.geometry)
        except (ProjError, ValueError) as e:
            raise GeometryTransformError(dataset_name, feature.record_index, str(e)) from e
        return feature.model_copy(update={"geometry": geometry})

    def inverse_feature(self, feature: Feature, dataset_name: str = "") -> Feature:
        """Inverse of ``reproject``: destination coordinates back to the source grid."""
        try:
            geometry = map_position_sequences(feature.geometry, self.inverse_positions)
        except (ProjError, ValueError) as e:
            raise GeometryTransformError(dataset_name, feature.record_index, str(e)) from e
        return feature.model_copy(update={"geometry": geometry})
