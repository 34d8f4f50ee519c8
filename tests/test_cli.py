"""Tests for the shplink command line."""

import json

import pytest
from conftest import make_zip
from typer.testing import CliRunner

from shplink.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    for name in ("SHPLINK_MAX_WORKERS", "SHPLINK_LAYER_COLORS", "SHPLINK_PROJECTION_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / "test.env"
    path.write_text("")
    return path


@pytest.fixture
def upload_path(tmp_path, multi_dataset_zip):
    path = tmp_path / "upload.zip"
    path.write_bytes(multi_dataset_zip)
    return path


class TestIngestCommand:

    def test_summary(self, upload_path, env_file):
        result = runner.invoke(app, ["ingest", str(upload_path), "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        assert "3 layer(s), 5 features" in result.output
        assert "puncte: loaded" in result.output
        assert "Bounds:" in result.output

    def test_export_geojson(self, upload_path, env_file, tmp_path):
        output = tmp_path / "out" / "layers.geojson"
        result = runner.invoke(
            app, ["ingest", str(upload_path), str(output), "--env-file", str(env_file), "--workers", "2"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data["features"]) == 5

    def test_missing_file(self, tmp_path, env_file):
        result = runner.invoke(app, ["ingest", str(tmp_path / "nope.zip"), "--env-file", str(env_file)])
        assert result.exit_code == 1

    def test_unsupported_upload(self, tmp_path, env_file):
        path = tmp_path / "harta.kml"
        path.write_text("<kml/>")
        result = runner.invoke(app, ["ingest", str(path), "--env-file", str(env_file)])
        assert result.exit_code == 1

    def test_no_valid_layers(self, tmp_path, env_file):
        path = tmp_path / "junk.zip"
        path.write_bytes(make_zip({"a.shp": b"junk"}))
        result = runner.invoke(app, ["ingest", str(path), "--env-file", str(env_file)])
        assert result.exit_code == 1
        assert "a: failed" in result.output

    def test_invalid_worker_count(self, upload_path, env_file):
        result = runner.invoke(app, ["ingest", str(upload_path), "--env-file", str(env_file), "--workers", "0"])
        assert result.exit_code == 1


class TestInspectCommand:

    def test_lists_datasets(self, upload_path):
        result = runner.invoke(app, ["inspect", str(upload_path)])
        assert result.exit_code == 0, result.output
        assert "[1] puncte.shp" in result.output
        assert "Found 3 dataset(s)" in result.output

    def test_archive_without_shapefiles(self, tmp_path):
        path = tmp_path / "docs.zip"
        path.write_bytes(make_zip({"readme.txt": b"hi"}))
        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 0
        assert "Found 0 dataset(s)" in result.output


class TestShowConfig:

    def test_effective_settings(self, monkeypatch, env_file):
        monkeypatch.setenv("SHPLINK_MAX_WORKERS", "3")
        result = runner.invoke(app, ["show-config", "--env-file", str(env_file)])
        assert result.exit_code == 0, result.output
        assert "max_workers: 3" in result.output
        assert "Stereo 70" in result.output

    def test_invalid_configuration(self, monkeypatch, env_file):
        monkeypatch.setenv("SHPLINK_MAX_WORKERS", "zero")
        result = runner.invoke(app, ["show-config", "--env-file", str(env_file)])
        assert result.exit_code == 1
