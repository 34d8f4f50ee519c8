"""Tests for Exporter output formats."""

import json
import sqlite3

import geopandas as gpd
import pytest
from shapely.geometry import shape
from conftest import make_upload

from shplink.domain.enums import ExportFormat
from shplink.pipeline.export import Exporter, generate_export_filename, layer_to_geodataframe
from shplink.pipeline.ingest import IngestionPipeline


@pytest.fixture
def pipeline_result(multi_dataset_zip):
    return IngestionPipeline().run(make_upload("upload.zip", multi_dataset_zip))


class TestFormatSelection:

    @pytest.mark.parametrize("name, expected", [
        ("out.geojson", ExportFormat.GEOJSON),
        ("out.json", ExportFormat.GEOJSON),
        ("out.GPKG", ExportFormat.GPKG),
        ("out.gdb", ExportFormat.FGDB),
        ("out.unknown", ExportFormat.GEOJSON),
    ])
    def test_inferred_from_extension(self, tmp_path, name, expected):
        assert Exporter(tmp_path / name).fmt == expected

    def test_explicit_format_wins(self, tmp_path):
        assert Exporter(tmp_path / "out.json", ExportFormat.GPKG).fmt == ExportFormat.GPKG

    def test_generated_filename(self):
        assert generate_export_filename("parcele.zip", ExportFormat.GPKG) == "parcele_layers.gpkg"
        assert generate_export_filename("drumuri.shp") == "drumuri_layers.geojson"


class TestGeoJSONExport:

    def test_combined_feature_collection(self, tmp_path, pipeline_result):
        path = Exporter(tmp_path / "out.geojson").write(pipeline_result, "upload.zip", tmp_path)
        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["type"] == "FeatureCollection"
        assert len(data["features"]) == 5
        layers = [f["properties"]["layer"] for f in data["features"]]
        assert layers == ["puncte"] * 3 + ["parcele", "drumuri"]
        assert data["features"][0]["properties"]["color"] == "#3b82f6"
        assert data["features"][0]["properties"]["NAME"] == "feature 0"
        assert data["metadata"]["total_count"] == 5
        assert data["metadata"]["layers"] == {"puncte": 3, "parcele": 1, "drumuri": 1}
        assert data["bbox"] == pytest.approx(list(pipeline_result.bounds.as_bbox()))

    def test_generated_path(self, tmp_path, pipeline_result):
        path = Exporter().write(pipeline_result, "upload.zip", tmp_path / "exports")
        assert path == tmp_path / "exports" / "upload_layers.geojson"
        assert path.exists()


class TestGeoPackageExport:

    def test_table_per_layer(self, tmp_path, pipeline_result):
        path = Exporter(tmp_path / "out.gpkg").write(pipeline_result, "upload.zip", tmp_path)

        puncte = gpd.read_file(path, layer="puncte")
        assert len(puncte) == 3
        assert list(puncte["NAME"]) == ["feature 0", "feature 1", "feature 2"]
        assert len(gpd.read_file(path, layer="parcele")) == 1

        with sqlite3.connect(path) as conn:
            rows = dict(conn.execute("SELECT key, value FROM metadata").fetchall())
        assert rows["total_count"] == "5"
        assert rows["source"] == "upload.zip"


class TestLayerConversion:

    def test_layer_to_geodataframe(self, pipeline_result):
        gdf = layer_to_geodataframe(pipeline_result.layers[1])
        assert len(gdf) == 1
        assert gdf.geometry.iloc[0].geom_type == "Polygon"
        assert gdf.crs.to_epsg() == 4326

    def test_exported_polygon_is_valid(self, tmp_path, pipeline_result):
        path = Exporter(tmp_path / "out.geojson").write(pipeline_result, "upload.zip", tmp_path)
        data = json.loads(path.read_text(encoding="utf-8"))
        polygon = shape(next(f["geometry"] for f in data["features"] if f["properties"]["layer"] == "parcele"))
        assert polygon.is_valid
        assert polygon.area > 0
