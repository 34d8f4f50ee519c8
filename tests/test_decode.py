"""Tests for ShapefileDecoder: record classification and attribute pairing."""

import datetime

import pytest
import shapefile
from conftest import STEREO_POINTS, STEREO_SQUARE, mark_deleted, point_shapefile, write_shapefile

from shplink.domain.enums import DiscardReason, GeometryKind
from shplink.pipeline.decode import ShapefileDecoder, normalize_value, resolve_encoding
from shplink.types import DatasetParseError, RawDataset


def raw(parts, name="layer", with_dbf=True, encoding=None):
    return RawDataset(
        name=name,
        position=0,
        geometry_bytes=parts["shp"],
        attribute_bytes=parts["dbf"] if with_dbf else None,
        encoding=encoding,
    )


@pytest.fixture
def decoder():
    return ShapefileDecoder()


class TestRecordDecoding:
    """Geometry and attribute rows paired by record order."""

    def test_points_with_attributes(self, decoder, points_parts):
        result = decoder.decode(raw(points_parts))
        features = result.features
        assert len(features) == 3
        assert features[0].geometry.type == GeometryKind.POINT.value
        assert features[0].geometry.coordinates[:2] == pytest.approx(STEREO_POINTS[0])
        assert [f.properties["NAME"] for f in features] == ["feature 0", "feature 1", "feature 2"]
        assert [f.record_index for f in features] == [0, 1, 2]
        assert result.stats.accepted == 3
        assert result.stats.skipped == 0

    def test_polygon_rings(self, decoder, polygon_parts):
        result = decoder.decode(raw(polygon_parts))
        feature = result.features[0]
        assert feature.geometry.type == "Polygon"
        assert len(feature.geometry.coordinates) == 1
        assert len(feature.geometry.coordinates[0]) == len(STEREO_SQUARE)

    def test_line(self, decoder, line_parts):
        result = decoder.decode(raw(line_parts))
        assert result.features[0].geometry.type == "LineString"
        assert result.features[0].properties == {"NAME": "road"}

    def test_multipart_line_is_multilinestring(self, decoder):
        lines = [[[0.0, 0.0], [1.0, 1.0]], [[2.0, 2.0], [3.0, 3.0]]]
        parts = write_shapefile(shapefile.POLYLINE, [("line", (lines,))])
        result = decoder.decode(raw(parts))
        assert result.features[0].geometry.type == "MultiLineString"
        assert len(result.features[0].geometry.coordinates) == 2

    def test_multipoint(self, decoder):
        parts = write_shapefile(shapefile.MULTIPOINT, [("multipoint", (STEREO_POINTS,))])
        result = decoder.decode(raw(parts))
        assert result.features[0].geometry.type == "MultiPoint"
        assert len(result.features[0].geometry.coordinates) == 3

    def test_without_attribute_table(self, decoder, points_parts):
        result = decoder.decode(raw(points_parts, with_dbf=False))
        assert len(result.features) == 3
        assert all(f.properties == {} for f in result.features)
        assert not result.has_attributes

    def test_short_attribute_table(self, decoder, points_parts):
        # A one-row table taken from a separate single-point dataset
        one_row = point_shapefile(points=[STEREO_POINTS[0]], records=[["only one"]])
        parts = {"shp": points_parts["shp"], "dbf": one_row["dbf"]}
        result = decoder.decode(raw(parts))
        assert len(result.features) == 3
        assert result.features[0].properties == {"NAME": "only one"}
        assert result.features[1].properties == {}
        assert result.features[2].properties == {}

    def test_deleted_row_keeps_alignment(self, decoder, points_parts):
        parts = {"shp": points_parts["shp"], "dbf": mark_deleted(points_parts["dbf"], 0)}
        result = decoder.decode(raw(parts))
        assert len(result.features) == 3
        assert [f.properties for f in result.features] == [{}, {"NAME": "feature 1"}, {"NAME": "feature 2"}]

    def test_deleted_middle_row(self, decoder, points_parts):
        parts = {"shp": points_parts["shp"], "dbf": mark_deleted(points_parts["dbf"], 1)}
        result = decoder.decode(raw(parts))
        assert [f.properties for f in result.features] == [{"NAME": "feature 0"}, {}, {"NAME": "feature 2"}]

    def test_attribute_types(self, decoder):
        parts = point_shapefile(
            points=[(500000.0, 500000.0)],
            fields=[("NAME", "C", 20), ("ID", "N", 10, 0), ("AREA", "N", 12, 2), ("DATA", "D")],
            records=[["Parcela", 7, 125.5, datetime.date(2023, 5, 17)]],
        )
        props = decoder.decode(raw(parts)).features[0].properties
        assert list(props) == ["NAME", "ID", "AREA", "DATA"]
        assert props["NAME"] == "Parcela"
        assert props["ID"] == 7
        assert props["AREA"] == pytest.approx(125.5)
        assert props["DATA"] == "2023-05-17"

    def test_codepage_encoding(self):
        parts = point_shapefile(points=[(500000.0, 500000.0)], records=[["Timişoara"]], encoding="cp1250")
        result = ShapefileDecoder().decode(raw(parts, encoding="1250"))
        assert result.features[0].properties["NAME"] == "Timişoara"


class TestSkippedRecords:
    """Null and unsupported records are skipped and counted."""

    def test_null_records_skipped(self, decoder):
        shapes = [("point", (500000.0, 500000.0)), ("null", ()), ("point", (501000.0, 501000.0))]
        parts = write_shapefile(shapefile.POINT, shapes)
        result = decoder.decode(raw(parts))

        assert [f.record_index for f in result.features] == [0, 2]
        # Attributes stay aligned with their own record
        assert [f.properties["NAME"] for f in result.features] == ["feature 0", "feature 2"]
        assert result.stats.null_geometry == 1
        assert result.discarded[0].record_index == 1
        assert result.discarded[0].reason == DiscardReason.NULL_GEOMETRY

    def test_all_null_decodes_to_no_features(self, decoder, null_only_parts):
        result = decoder.decode(raw(null_only_parts))
        assert result.features == []
        assert result.stats.null_geometry == 2

    def test_multipatch_unsupported(self, decoder):
        patch = [[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]]
        parts = write_shapefile(shapefile.MULTIPATCH, [("multipatch", (patch, [shapefile.TRIANGLE_STRIP]))])
        result = decoder.decode(raw(parts))
        assert result.features == []
        assert result.stats.unsupported_geometry == 1
        assert result.discarded[0].reason == DiscardReason.UNSUPPORTED_GEOMETRY


class TestStructuralFailures:
    """Unreadable streams fail the whole dataset."""

    def test_garbage_geometry_stream(self, decoder):
        dataset = RawDataset(name="bad", position=0, geometry_bytes=b"not a shapefile at all")
        with pytest.raises(DatasetParseError) as exc:
            decoder.decode(dataset)
        assert exc.value.dataset_name == "bad"

    def test_empty_geometry_stream(self, decoder):
        with pytest.raises(DatasetParseError):
            decoder.decode(RawDataset(name="empty", position=0, geometry_bytes=b""))

    def test_read_error_from_extraction(self, decoder):
        dataset = RawDataset(name="crc", position=0, geometry_bytes=b"", read_error="Bad CRC-32")
        with pytest.raises(DatasetParseError, match="Bad CRC-32"):
            decoder.decode(dataset)


class TestHelpers:

    @pytest.mark.parametrize("codepage, expected", [
        (None, "utf-8"),
        ("", "utf-8"),
        ("UTF-8", "UTF-8"),
        ("1250", "cp1250"),
        ("ANSI 1252", "cp1252"),
        ("not-a-codec", "utf-8"),
    ])
    def test_resolve_encoding(self, codepage, expected):
        assert resolve_encoding(codepage, "utf-8") == expected

    def test_normalize_value(self):
        assert normalize_value(datetime.date(2020, 1, 2)) == "2020-01-02"
        assert normalize_value(b"abc") == "abc"
        assert normalize_value(3.5) == 3.5
        assert normalize_value(None) is None
