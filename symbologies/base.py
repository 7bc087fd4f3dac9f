"""Abstract base class for barcode symbology encoders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from PIL import Image

from label_errors import ValidationError
from label_types import ElementKind
from .utils import ModuleMatrix, render_linear, render_matrix


class SymbologyEncoder(ABC):
    """Turns a text payload into a monochrome raster of a requested size."""

    kind: ClassVar[ElementKind]
    # Blank margin on every side, in modules.
    quiet_zone: ClassVar[int]
    two_dimensional: ClassVar[bool] = True
    # Minimum bar height in pixels for linear symbols.
    min_bar_height: ClassVar[int] = 10

    @abstractmethod
    def default_size(self, payload: str) -> tuple[int, int]:
        """Return the ``(width, height)`` used when the caller gives none."""

    @abstractmethod
    def build_modules(self, payload: str) -> ModuleMatrix:
        """Return the symbol as rows of dark (``True``) / light modules."""

    def normalize_payload(self, payload: str) -> str:
        """Validate ``payload`` and return the exact text to encode."""

        if not payload or not payload.strip():
            raise ValidationError(f"{self.kind} payload cannot be empty.")
        return payload

    def encode(
        self,
        payload: str,
        width: float | None = None,
        height: float | None = None,
    ) -> Image.Image:
        payload = self.normalize_payload(payload)
        default_width, default_height = self.default_size(payload)
        width_px = default_width if width is None else int(round(width))
        height_px = default_height if height is None else int(round(height))
        if width_px <= 0 or height_px <= 0:
            raise ValidationError(
                f"{self.kind} raster size must be positive, got {width_px}x{height_px}."
            )

        modules = self.build_modules(payload)
        if self.two_dimensional:
            return render_matrix(modules, width_px, height_px, self.quiet_zone)
        return render_linear(
            modules[0],
            width_px,
            height_px,
            self.quiet_zone,
            min_bar_height=self.min_bar_height,
        )
