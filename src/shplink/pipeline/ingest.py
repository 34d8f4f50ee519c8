"""
IngestionPipeline - Upload to Render-Ready Layers

Drives Extract -> Decode -> Reproject -> Assemble for every dataset in an
upload, then computes the overall bounds. Failures are isolated: a corrupt
dataset is skipped, a feature that cannot be reprojected is dropped, and
only an upload that yields no layer at all fails as a whole.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..config.settings import PipelineSettings
from ..domain.enums import DatasetStatus, DiscardReason
from ..domain.models import DatasetReport, DiscardRecord, Feature, PipelineResult
from ..types import (
    Accepted,
    DatasetParseError,
    Discarded,
    GeometryTransformError,
    NoValidLayers,
    RawDataset,
    RecordOutcome,
    UploadedFile,
)
from ..utils import timer
from .assemble import LayerAssembler
from .bounds import compute_bounds
from .decode import ShapefileDecoder, tally
from .extract import ArchiveExtractor
from .reproject import Reprojector

logger = logging.getLogger(__name__)


@dataclass
class ProcessedDataset:
    """Worker output for one dataset: its report and surviving features."""
    report: DatasetReport
    features: list[Feature] = field(default_factory=list)


class IngestionPipeline:
    """
    Shapefile ingestion pipeline.

    One instance can run any number of uploads; each run owns its buffers
    and returns an independent PipelineResult.
    """

    def __init__(self, settings: Optional[PipelineSettings] = None):
        """
        Initialize pipeline components from settings.

        Args:
            settings: Pipeline settings; defaults to Stereo 70 -> WGS84

        Raises:
            ConfigurationError: If the projection definitions are invalid
        """
        self.settings = settings or PipelineSettings()
        self.extractor = ArchiveExtractor()
        self.decoder = ShapefileDecoder(
            encoding=self.settings.attribute_encoding,
            encoding_errors=self.settings.encoding_errors,
        )
        self.reprojector = Reprojector(
            self.settings.source_projection,
            self.settings.destination_projection,
        )
        self.assembler = LayerAssembler(self.settings.palette)

    @timer
    def run(self, upload: UploadedFile) -> PipelineResult:
        """
        Ingest one upload.

        Args:
            upload: Bare .shp file or .zip archive

        Returns:
            PipelineResult with layers in discovery order and overall bounds

        Raises:
            UnsupportedFormat: Upload extension unrecognized or archive unreadable
            EmptyArchive: Archive holds no .shp entries
            NoValidLayers: No dataset produced a layer
        """
        datasets = self.extractor.extract(upload)
        logger.info(f"Parsing {len(datasets)} shapefile(s) from {upload.filename}...")

        processed = self._process_all(datasets)

        layers = []
        reports = []
        for item in processed:
            reports.append(item.report)
            layer = self.assembler.assemble(item.report.name, item.features, item.report.position)
            if layer is not None:
                layers.append(layer)

        if not layers:
            raise NoValidLayers(reports)

        bounds = compute_bounds(feature for layer in layers for feature in layer.features)
        result = PipelineResult(layers=layers, bounds=bounds, reports=reports)

        totals = result.totals
        logger.info(
            f"Successfully parsed {len(layers)} layer(s): {totals.accepted:,} features, "
            f"{totals.skipped:,} skipped"
        )
        logger.info(f"Bounds: {bounds.to_leaflet()}")
        return result

    def _process_all(self, datasets: list[RawDataset]) -> list[ProcessedDataset]:
        workers = min(self.settings.max_workers, len(datasets))
        if workers <= 1:
            return [self.process_dataset(dataset) for dataset in datasets]

        logger.debug(f"Processing {len(datasets)} datasets with {workers} workers")
        # map() yields in submission order, which keeps discovery order
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shplink") as pool:
            return list(pool.map(self.process_dataset, datasets))

    def process_dataset(self, dataset: RawDataset) -> ProcessedDataset:
        """
        Decode and reproject one dataset without letting its failure escape.

        Args:
            dataset: Raw dataset from the extractor

        Returns:
            ProcessedDataset; failed datasets carry an error and no features
        """
        logger.info(f"Parsing layer {dataset.position + 1}: {dataset.name}")

        try:
            decoded = self.decoder.decode(dataset)
        except DatasetParseError as e:
            logger.error(f"Error parsing layer \"{dataset.name}\": {e}")
            logger.info(f"Skipping layer \"{dataset.name}\" and continuing with others...")
            return ProcessedDataset(
                report=DatasetReport(
                    name=dataset.name,
                    position=dataset.position,
                    status=DatasetStatus.FAILED,
                    has_attributes=dataset.has_attributes,
                    error=str(e),
                )
            )

        outcomes = [self._reproject_outcome(dataset.name, outcome) for outcome in decoded.outcomes]
        stats = tally(outcomes)
        features = [o.feature for o in outcomes if isinstance(o, Accepted)]

        if stats.skipped:
            logger.warning(
                f"Layer \"{dataset.name}\": skipped {stats.skipped} record(s) "
                f"(null {stats.null_geometry}, unsupported {stats.unsupported_geometry}, "
                f"transform {stats.transform_failed})"
            )

        report = DatasetReport(
            name=dataset.name,
            position=dataset.position,
            status=DatasetStatus.LOADED if features else DatasetStatus.EMPTY,
            stats=stats,
            discarded=[
                DiscardRecord(record_index=o.record_index, reason=o.reason, detail=o.detail)
                for o in outcomes if isinstance(o, Discarded)
            ],
            has_attributes=decoded.has_attributes,
        )
        return ProcessedDataset(report=report, features=features)

    def _reproject_outcome(self, dataset_name: str, outcome: RecordOutcome) -> RecordOutcome:
        if not isinstance(outcome, Accepted):
            return outcome

        try:
            return Accepted(self.reprojector.reproject(outcome.feature, dataset_name))
        except GeometryTransformError as e:
            logger.warning(f"Dropping feature: {e}")
            return Discarded(outcome.feature.record_index, DiscardReason.TRANSFORM_FAILED, str(e))


def ingest_upload(
    upload: Union[UploadedFile, Path, str, bytes, BinaryIO],
    filename: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
) -> PipelineResult:
    """
    Ingest an uploaded shapefile or archive with a one-off pipeline.

    Args:
        upload: UploadedFile, filesystem path, raw bytes, or binary stream
        filename: Declared filename (required for raw bytes)
        settings: Pipeline settings; defaults to Stereo 70 -> WGS84

    Returns:
        PipelineResult with layers and bounds
    """
    if isinstance(upload, UploadedFile):
        uploaded = upload
    elif isinstance(upload, (str, Path)):
        uploaded = UploadedFile.from_path(upload)
    elif isinstance(upload, (bytes, bytearray)):
        if not filename:
            raise ValueError("A filename is required when ingesting raw bytes")
        uploaded = UploadedFile(filename=filename, content=bytes(upload))
    else:
        uploaded = UploadedFile.from_stream(upload, filename)

    return IngestionPipeline(settings).run(uploaded)
