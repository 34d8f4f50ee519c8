import dataclasses
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from .config.settings import Config, ConfigurationError
from .domain.enums import DatasetStatus, ExportFormat
from .pipeline.export import Exporter
from .pipeline.extract import ArchiveExtractor
from .pipeline.ingest import IngestionPipeline
from .types import IngestError, NoValidLayers, UploadedFile
from .utils import setup_logging

app = typer.Typer(help="Shapefile ingestion: Extract -> Decode -> Reproject -> Assemble/Export")


def load_upload(file: Path) -> UploadedFile:
    """Read an upload from disk, exiting with an error when it is missing."""
    if not file.exists():
        typer.echo(f"ERROR: File not found: {file}", err=True)
        raise typer.Exit(1)
    return UploadedFile.from_path(file)


def echo_reports(reports) -> None:
    """Print one line per discovered dataset."""
    for report in reports:
        stats = report.stats
        line = f"  [{report.position + 1}] {report.name}: {report.status.value}"
        if report.status == DatasetStatus.FAILED:
            line += f" ({report.error})"
        else:
            line += f", {stats.accepted:,} features, {stats.skipped:,} skipped"
        typer.echo(line)


@app.command("ingest")
def ingest_command(
    file: Annotated[Path, typer.Argument(help="Shapefile (.shp) or ZIP archive of shapefiles")],
    output_path: Annotated[Optional[Path], typer.Argument(help="Output file path (optional - summary only if not provided)")] = None,
    format: Annotated[Optional[ExportFormat], typer.Option("--format", "-f", help="Export format: geojson, gpkg, fgdb (inferred from OUTPUT if omitted)")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", "-w", help="Datasets processed in parallel (overrides SHPLINK_MAX_WORKERS)")] = None,
    env_file: Annotated[Optional[Path], typer.Option("--env-file", help="Explicit environment file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
):
    """
    Ingest an upload and report its layers, optionally exporting them.

    Examples:
        shplink ingest parcele.zip
        shplink ingest parcele.zip out/parcele.gpkg
        shplink ingest drumuri.shp out/drumuri.json --format geojson
    """
    setup_logging(verbose, target_name=file.stem, mode="ingest", enable_file_logging=log_to_file)

    try:
        settings = Config(env_file=env_file).get_pipeline_settings()
        if workers is not None:
            settings = dataclasses.replace(settings, max_workers=workers)
    except (ConfigurationError, ValueError) as e:
        typer.echo(f"ERROR: Invalid configuration: {e}", err=True)
        raise typer.Exit(1) from e

    upload = load_upload(file)

    try:
        result = IngestionPipeline(settings).run(upload)
    except NoValidLayers as e:
        typer.echo(f"ERROR: {e}", err=True)
        echo_reports(e.reports)
        raise typer.Exit(1) from e
    except (IngestError, ConfigurationError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"Ingested {file.name}: {len(result.layers)} layer(s), {result.feature_count:,} features")
    echo_reports(result.reports)
    typer.echo(f"Bounds: {result.bounds.to_leaflet()}")

    if output_path is None:
        return

    try:
        written = Exporter(output_path, format).write(result, upload.filename, output_path.parent)
    except (OSError, RuntimeError, ValueError) as e:
        logging.error(f"Export failed: {e}")
        typer.echo(f"ERROR: Export failed: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"Exported to {written}")


@app.command("inspect")
def inspect_command(
    file: Annotated[Path, typer.Argument(help="Shapefile (.shp) or ZIP archive of shapefiles")],
):
    """
    List the shapefile datasets an upload contains without decoding them.

    Examples:
        shplink inspect parcele.zip
    """
    upload = load_upload(file)

    try:
        entries = ArchiveExtractor().list_entries(upload)
    except IngestError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"Datasets in {file.name}")
    typer.echo("=" * 50)
    for position, entry in enumerate(entries, start=1):
        typer.echo(f"  [{position}] {entry}")
    typer.echo(f"\nFound {len(entries)} dataset(s)")


@app.command("show-config")
def show_config(
    env_file: Annotated[Optional[Path], typer.Option("--env-file", help="Explicit environment file")] = None,
):
    """Display the effective pipeline configuration."""
    try:
        config = Config(env_file=env_file)
    except ConfigurationError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo("Pipeline Configuration")
    typer.echo("=" * 50)
    for key, value in config.get_summary().items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value) or "-"
        typer.echo(f"  {key}: {value}")


@app.command("version")
def version():
    """Display version information."""
    from . import __version__
    typer.echo(f"shplink version: {__version__}")


if __name__ == "__main__":
    app()
