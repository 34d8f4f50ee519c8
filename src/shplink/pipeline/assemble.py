"""
LayerAssembler - Features to Colored Layers

Packages each dataset's reprojected features into a Layer whose color is
picked from the palette by the dataset's ingestion position.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from ..config.projections import DEFAULT_LAYER_COLORS
from ..domain.models import Feature, Layer

logger = logging.getLogger(__name__)


class LayerAssembler:
    """Deterministic layer construction; color depends only on position."""

    def __init__(self, palette: Sequence[str] = DEFAULT_LAYER_COLORS):
        if not palette:
            raise ValueError("Palette must contain at least one color")
        self.palette = tuple(palette)

    def color_for(self, position: int) -> str:
        return self.palette[position % len(self.palette)]

    def assemble(self, name: str, features: Sequence[Feature], position: int) -> Optional[Layer]:
        """
        Build the layer for one dataset.

        Args:
            name: Dataset name
            features: Accepted, reprojected features in record order
            position: 0-based ingestion position of the dataset

        Returns:
            The Layer, or None when there are no features
        """
        if not features:
            logger.warning(f"Layer \"{name}\" has no valid features, skipping")
            return None

        return Layer(
            name=name,
            features=list(features),
            color=self.color_for(position),
            position=position,
        )
