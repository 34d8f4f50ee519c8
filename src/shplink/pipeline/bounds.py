"""
BoundsAccumulator - Overall Extent of Transformed Features

Folds every position of every feature into one axis-aligned rectangle in
destination degrees. No antimeridian or polar handling.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from ..domain.geometry import iter_positions
from ..domain.models import Bounds, Feature


class BoundsAccumulator:
    """Running min/max over (longitude, latitude) positions."""

    def __init__(self):
        self.south = math.inf
        self.west = math.inf
        self.north = -math.inf
        self.east = -math.inf
        self.positions_seen = 0

    def add_feature(self, feature: Feature) -> None:
        for position in iter_positions(feature.geometry):
            lng, lat = position[0], position[1]
            self.south = min(self.south, lat)
            self.north = max(self.north, lat)
            self.west = min(self.west, lng)
            self.east = max(self.east, lng)
            self.positions_seen += 1

    def add_features(self, features: Iterable[Feature]) -> None:
        for feature in features:
            self.add_feature(feature)

    @property
    def bounds(self) -> Bounds:
        return Bounds(south=self.south, west=self.west, north=self.north, east=self.east)


def compute_bounds(features: Iterable[Feature]) -> Bounds:
    """
    Bounds of ``features``.

    Returns the infinite sentinel rectangle (``Bounds.is_empty``) when no
    position was observed.
    """
    accumulator = BoundsAccumulator()
    accumulator.add_features(features)
    return accumulator.bounds
