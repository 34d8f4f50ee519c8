"""
Exporter - Multi-format Result Export

Writes a PipelineResult to GeoJSON, GeoPackage, or File Geodatabase.
GeoJSON gets one combined FeatureCollection with every feature tagged by
its layer; the table formats get one table per layer.
"""

import json
import logging
import shutil
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import fiona
import geopandas as gpd

from ..domain.enums import ExportFormat
from ..domain.models import Layer, PipelineResult
from ..utils import clean_filename, ensure_directory, split_extension

logger = logging.getLogger(__name__)

EXTENSIONS = {
    ExportFormat.GEOJSON: "geojson",
    ExportFormat.GPKG: "gpkg",
    ExportFormat.FGDB: "gdb",
}


def layer_to_geodataframe(layer: Layer, crs: str = "EPSG:4326") -> gpd.GeoDataFrame:
    """
    Convert a layer into a GeoDataFrame.

    Args:
        layer: Assembled layer in destination coordinates
        crs: CRS of the layer coordinates

    Returns:
        GeoDataFrame with one row per feature, attribute columns in table order
    """
    return gpd.GeoDataFrame.from_features(
        [feature.__geo_interface__ for feature in layer.features], crs=crs
    )


class Exporter:
    """
    Multi-format result exporter.

    Format is taken from the explicit ``fmt`` argument, else inferred from
    the output path extension, else GeoJSON.
    """

    def __init__(self, out_path: Optional[Path] = None, fmt: Optional[ExportFormat] = None, crs: str = "EPSG:4326"):
        self.out_path = out_path
        self.crs = crs
        if fmt is not None:
            self.fmt = fmt
        elif out_path is not None:
            self.fmt = ExportFormat.from_extension(out_path)
        else:
            self.fmt = ExportFormat.GEOJSON

    def write(self, result: PipelineResult, base_name: str, out_dir: Path) -> Path:
        """
        Write ``result`` to the configured path, or to ``out_dir`` under a
        generated name.

        Returns:
            Path to the created file or directory
        """
        if self.out_path:
            output_path = self.out_path
        else:
            output_path = out_dir / generate_export_filename(base_name, self.fmt)

        self.export_result(result, output_path, source_name=base_name)
        return output_path

    def export_result(
        self,
        result: PipelineResult,
        output_path: Path,
        source_name: str = "",
        include_metadata: bool = True,
    ) -> None:
        """
        Export a pipeline result in the configured format.

        Args:
            result: Pipeline result to write
            output_path: Destination file (or .gdb directory)
            source_name: Upload name recorded in metadata
            include_metadata: Whether to write the metadata block/table

        Raises:
            RuntimeError: If the FGDB driver is unavailable
            ValueError: If the written GeoJSON fails validation
        """
        output_path = Path(output_path)
        ensure_directory(output_path.parent)

        if self.fmt == ExportFormat.GEOJSON:
            self._export_to_geojson(result, output_path, source_name, include_metadata)
        elif self.fmt == ExportFormat.GPKG:
            self._export_to_gpkg(result, output_path, source_name, include_metadata)
        elif self.fmt == ExportFormat.FGDB:
            self._export_to_fgdb(result, output_path)
        else:
            raise ValueError(f"Unsupported export format: {self.fmt}")

        logger.info(f"Successfully exported to {output_path} ({self.fmt.value})")

    def _metadata(self, result: PipelineResult, source_name: str) -> dict[str, Any]:
        totals = result.totals
        return {
            "generated": datetime.now(timezone.utc).isoformat(),
            "source": source_name,
            "crs": self.crs,
            "layers": {layer.name: layer.feature_count for layer in result.layers},
            "total_count": result.feature_count,
            "skipped_count": totals.skipped,
        }

    def _export_to_geojson(
        self,
        result: PipelineResult,
        output_path: Path,
        source_name: str,
        include_metadata: bool,
    ) -> None:
        geojson_data: dict[str, Any] = result.__geo_interface__
        features = geojson_data["features"]
        if not result.bounds.is_empty:
            geojson_data["bbox"] = list(result.bounds.as_bbox())
        if include_metadata:
            geojson_data["metadata"] = self._metadata(result, source_name)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(geojson_data, f, ensure_ascii=False)

        if not self._validate_geojson_file(output_path):
            raise ValueError(f"Generated GeoJSON file is invalid: {output_path}")

        logger.info(f"GeoJSON export completed: {len(features):,} features written to {output_path}")

    def _export_to_gpkg(
        self,
        result: PipelineResult,
        output_path: Path,
        source_name: str,
        include_metadata: bool,
    ) -> None:
        if output_path.exists():
            output_path.unlink()

        for i, (name, gdf) in enumerate(self._layer_tables(result)):
            mode = "w" if i == 0 else "a"
            logger.debug(f"Exporting layer '{name}' with {len(gdf)} features")
            gdf.to_file(output_path, driver="GPKG", layer=name, mode=mode)

        if include_metadata:
            self._add_gpkg_metadata(output_path, result, source_name)

    def _export_to_fgdb(self, result: PipelineResult, output_path: Path) -> None:
        if "OpenFileGDB" not in fiona.supported_drivers:
            raise RuntimeError("OpenFileGDB driver not available. Please install GDAL with OpenFileGDB support.")

        if output_path.exists():
            shutil.rmtree(output_path)

        for i, (name, gdf) in enumerate(self._layer_tables(result)):
            gdf = self._prepare_for_fgdb(gdf)
            mode = "w" if i == 0 else "a"
            logger.debug(f"Exporting feature class '{name}' with {len(gdf)} features")
            gdf.to_file(output_path, driver="OpenFileGDB", layer=name, mode=mode)

    def _layer_tables(self, result: PipelineResult) -> list[tuple[str, gpd.GeoDataFrame]]:
        tables = []
        used: set[str] = set()
        for layer in result.layers:
            name = clean_filename(layer.name) or f"layer_{layer.position}"
            # Same base name in different archive folders
            if name in used:
                name = f"{name}_{layer.position}"
            used.add(name)
            tables.append((name, layer_to_geodataframe(layer, self.crs)))
        return tables

    def _prepare_for_fgdb(self, gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Truncate column names to the 64 character FGDB limit."""
        rename_map = {}
        for col in gdf.columns:
            if col != "geometry" and len(col) > 64:
                logger.warning(f"Truncating field name '{col}' to '{col[:64]}' for FGDB compatibility")
                rename_map[col] = col[:64]
        return gdf.rename(columns=rename_map) if rename_map else gdf

    def _add_gpkg_metadata(self, output_path: Path, result: PipelineResult, source_name: str) -> None:
        metadata = self._metadata(result, source_name)
        metadata["layers"] = json.dumps(metadata["layers"])

        conn = sqlite3.connect(output_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)
            for key, value in metadata.items():
                cursor.execute("INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)", (key, str(value)))
            conn.commit()
        finally:
            conn.close()

    def _validate_geojson_file(self, filepath: Path) -> bool:
        """Validate that the exported GeoJSON file is a FeatureCollection."""
        try:
            with open(filepath, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"GeoJSON validation failed: {e}")
            return False

        if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
            logger.error("Invalid GeoJSON: root must be a FeatureCollection object")
            return False

        if not isinstance(data.get("features"), list):
            logger.error("Invalid GeoJSON: features must be an array")
            return False

        return True


def generate_export_filename(source_name: str, export_format: ExportFormat = ExportFormat.GEOJSON) -> str:
    """
    Generate default export filename for an upload.

    Args:
        source_name: Upload filename, e.g. 'parcele.zip'
        export_format: Export format

    Returns:
        Filename such as 'parcele_layers.geojson'
    """
    base, _ = split_extension(source_name)
    extension = EXTENSIONS.get(export_format, "geojson")
    filename = f"{clean_filename(base) or 'upload'}_layers.{extension}"

    logger.info(f"Generated export filename: {filename}")
    return filename
