"""
Configuration management for the shapefile ingestion pipeline.

Usage:
    from shplink.config.settings import Config
    config = Config()
    settings = config.get_pipeline_settings()

Environment Variables (SHPLINK_ standard):
    SHPLINK_MAX_WORKERS: Datasets decoded in parallel (default 1)
    SHPLINK_ATTRIBUTE_ENCODING: Default .dbf text encoding (default utf-8)
    SHPLINK_ENCODING_ERRORS: Codec error handling: strict|replace|ignore
    SHPLINK_LAYER_COLORS: Comma-separated #rrggbb palette
    SHPLINK_PROJECTION_FILE: YAML file with source/destination projections
"""

import codecs
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from ..domain.models import ProjectionParams
from .projections import DEFAULT_LAYER_COLORS, STEREO_70, WGS84

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")
ENCODING_ERROR_MODES = ("strict", "replace", "ignore")


@dataclass
class ProcessingConfig:
    """Decoding and worker configuration."""
    max_workers: int = 1
    attribute_encoding: str = "utf-8"
    encoding_errors: str = "replace"

    def __post_init__(self):
        """Validate processing configuration."""
        if self.max_workers < 1:
            raise ValueError("Worker count must be positive")

        try:
            codecs.lookup(self.attribute_encoding)
        except LookupError:
            raise ValueError(f"Unknown attribute encoding: {self.attribute_encoding}")

        if self.encoding_errors not in ENCODING_ERROR_MODES:
            raise ValueError(f"Encoding errors must be one of: {', '.join(ENCODING_ERROR_MODES)}")


@dataclass
class PaletteConfig:
    """Layer color palette configuration."""
    colors: tuple[str, ...] = DEFAULT_LAYER_COLORS

    def __post_init__(self):
        """Validate palette colors."""
        if not self.colors:
            raise ValueError("Palette must contain at least one color")

        bad = [c for c in self.colors if not HEX_COLOR.match(c)]
        if bad:
            raise ValueError(f"Palette colors must be #rrggbb hex values: {', '.join(bad)}")


@dataclass(frozen=True)
class PipelineSettings:
    """
    Immutable settings consumed by one ingestion pipeline.

    The defaults reproduce the built-in behaviour: Stereo 70 input,
    WGS84 output, the default palette and sequential decoding.
    """
    source_projection: ProjectionParams = field(default_factory=lambda: STEREO_70)
    destination_projection: ProjectionParams = field(default_factory=lambda: WGS84)
    palette: tuple[str, ...] = DEFAULT_LAYER_COLORS
    max_workers: int = 1
    attribute_encoding: str = "utf-8"
    encoding_errors: str = "replace"

    def __post_init__(self):
        # Re-run section validation so hand-built settings obey the same rules
        ProcessingConfig(self.max_workers, self.attribute_encoding, self.encoding_errors)
        PaletteConfig(tuple(self.palette))


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


class Config:
    """
    Centralized configuration management for the ingestion pipeline.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Example:
        # Auto-detect from ENVIRONMENT variable
        config = Config()

        # Explicit env file
        config = Config(env_file=Path("/srv/portal/ingest.env"))
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)

        self._load_processing_config()
        self._load_palette_config()
        self._load_projection_config()

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml, .git or a .env file."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        if (Path.cwd() / '.env').exists():
            return Path.cwd()

        return Path.cwd()

    def _load_environment_variables(self, env_file: Optional[Path]) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            env_file = Path(env_file)
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.info(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self._loaded_env_files = loaded_files

        logger.debug(f"Project root: {self.project_root}")
        logger.debug(f"Environment: {self.environment}")

    def _load_processing_config(self) -> None:
        """Load decoding and worker configuration."""
        try:
            self.processing = ProcessingConfig(
                max_workers=int(os.getenv("SHPLINK_MAX_WORKERS", "1")),
                attribute_encoding=os.getenv("SHPLINK_ATTRIBUTE_ENCODING", "utf-8"),
                encoding_errors=os.getenv("SHPLINK_ENCODING_ERRORS", "replace"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid processing configuration: {e}")

    def _load_palette_config(self) -> None:
        """Load layer palette, falling back to the built-in colors."""
        raw = os.getenv("SHPLINK_LAYER_COLORS")
        colors = tuple(c.strip() for c in raw.split(",") if c.strip()) if raw else DEFAULT_LAYER_COLORS

        try:
            self.palette = PaletteConfig(colors=colors)
        except ValueError as e:
            raise ConfigurationError(f"Invalid palette configuration: {e}")

    def _load_projection_config(self) -> None:
        """Load projection definitions from SHPLINK_PROJECTION_FILE if set."""
        from ..config_loader import load_projection_file

        self.source_projection = STEREO_70
        self.destination_projection = WGS84

        projection_file = os.getenv("SHPLINK_PROJECTION_FILE")
        if projection_file:
            path = Path(projection_file)
            if not path.is_absolute():
                path = self.project_root / path
            self.source_projection, self.destination_projection = load_projection_file(path)
            logger.info(f"Loaded projection definitions from {path}")

    def get_pipeline_settings(self) -> PipelineSettings:
        """
        Build the immutable settings object for IngestionPipeline.

        Returns:
            PipelineSettings reflecting this configuration
        """
        return PipelineSettings(
            source_projection=self.source_projection,
            destination_projection=self.destination_projection,
            palette=self.palette.colors,
            max_workers=self.processing.max_workers,
            attribute_encoding=self.processing.attribute_encoding,
            encoding_errors=self.processing.encoding_errors,
        )

    def get_summary(self) -> dict[str, Any]:
        """
        Get configuration summary for display and audit purposes.

        Returns:
            Dictionary with the effective settings
        """
        return {
            'environment': self.environment,
            'loaded_env_files': self._loaded_env_files,
            'source_projection': self.source_projection.name,
            'source_proj4': self.source_projection.to_proj4(),
            'destination_projection': self.destination_projection.name,
            'max_workers': self.processing.max_workers,
            'attribute_encoding': self.processing.attribute_encoding,
            'encoding_errors': self.processing.encoding_errors,
            'palette': list(self.palette.colors),
        }

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment}, "
            f"source={self.source_projection.name}, "
            f"workers={self.processing.max_workers})"
        )
