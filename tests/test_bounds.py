"""Tests for BoundsAccumulator and compute_bounds."""

import math

from shplink.domain.geometry import geometry_from_geo_interface
from shplink.domain.models import Bounds, Feature
from shplink.pipeline.bounds import BoundsAccumulator, compute_bounds


def feature(mapping):
    return Feature(geometry=geometry_from_geo_interface(mapping))


class TestBounds:
    """Overall extent over every position of every feature."""

    def test_two_points(self):
        bounds = compute_bounds([
            feature({"type": "Point", "coordinates": (24.0, 45.0)}),
            feature({"type": "Point", "coordinates": (26.0, 46.0)}),
        ])
        assert bounds.south == 45.0
        assert bounds.west == 24.0
        assert bounds.north == 46.0
        assert bounds.east == 26.0
        assert bounds.to_leaflet() == [[45.0, 24.0], [46.0, 26.0]]
        assert bounds.as_bbox() == (24.0, 45.0, 26.0, 46.0)

    def test_includes_interior_ring_positions(self):
        polygon = {
            "type": "MultiPolygon",
            "coordinates": [
                [[(25.0, 45.5), (25.0, 46.0), (25.5, 46.0), (25.0, 45.5)]],
                [[(21.0, 44.0), (21.0, 44.2), (21.3, 44.2), (21.0, 44.0)]],
            ],
        }
        bounds = compute_bounds([feature(polygon)])
        assert (bounds.south, bounds.west, bounds.north, bounds.east) == (44.0, 21.0, 46.0, 25.5)

    def test_every_position_inside(self):
        features = [
            feature({"type": "LineString", "coordinates": [(23.1, 44.9), (27.4, 47.2), (25.0, 46.0)]}),
            feature({"type": "MultiPoint", "coordinates": [(22.5, 45.1), (28.0, 44.3)]}),
        ]
        bounds = compute_bounds(features)
        for f in features:
            for lng, lat in f.__geo_interface__["geometry"]["coordinates"]:
                assert bounds.south <= lat <= bounds.north
                assert bounds.west <= lng <= bounds.east

    def test_empty_input_keeps_sentinels(self):
        bounds = compute_bounds([])
        assert bounds.is_empty
        assert bounds.south == math.inf
        assert bounds.west == math.inf
        assert bounds.north == -math.inf
        assert bounds.east == -math.inf

    def test_default_bounds_is_empty(self):
        assert Bounds().is_empty

    def test_accumulator_counts_positions(self):
        accumulator = BoundsAccumulator()
        accumulator.add_feature(feature({"type": "LineString", "coordinates": [(24.0, 45.0), (26.0, 46.0)]}))
        accumulator.add_feature(feature({"type": "Point", "coordinates": (25.0, 45.5, 120.0)}))
        assert accumulator.positions_seen == 3
        assert not accumulator.bounds.is_empty
