"""
Projection definition loading for the shapefile ingestion pipeline.

Projection files are YAML documents with a required ``source`` mapping and
an optional ``destination`` mapping, each holding ProjectionParams fields:

    source:
      name: Stereo 70
      proj: sterea
      ellipsoid: krass
      lat_0: 46
      ...
      datum_shift: {dx: 33.4, dy: -146.6, ...}

The packaged ``data/projections.yml`` reproduces the built-in definitions.
"""

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .config.projections import WGS84
from .config.settings import ConfigurationError
from .domain.models import ProjectionParams
from .utils import load_yaml_file

DEFAULT_PROJECTION_FILE = Path(__file__).parent / "data" / "projections.yml"


def parse_projection(definition: Any, section: str) -> ProjectionParams:
    """
    Validate one projection mapping.

    Args:
        definition: Mapping of ProjectionParams fields
        section: Section name, used in error messages

    Raises:
        ConfigurationError: If the mapping is missing or invalid
    """
    if not isinstance(definition, dict):
        raise ConfigurationError(f"Projection section '{section}' must be a mapping")

    try:
        return ProjectionParams(**definition)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid projection '{section}': {e}") from e


def load_projection_file(path: Path = DEFAULT_PROJECTION_FILE) -> tuple[ProjectionParams, ProjectionParams]:
    """
    Load source and destination projections from a YAML file.

    Args:
        path: YAML projection file

    Returns:
        Tuple of (source, destination); destination defaults to WGS84

    Raises:
        ConfigurationError: If the file is missing, not YAML, or invalid
    """
    try:
        document = load_yaml_file(Path(path))
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(str(e)) from e

    if not isinstance(document, dict) or "source" not in document:
        raise ConfigurationError(f"Projection file {path} must define a 'source' section")

    source = parse_projection(document["source"], "source")
    destination = (
        parse_projection(document["destination"], "destination")
        if document.get("destination") is not None
        else WGS84
    )
    return source, destination
