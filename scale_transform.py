"""Conversion of a design-resolution document to printer pixels."""

from __future__ import annotations

import math
from dataclasses import dataclass

from label_config import PrinterConfig
from label_errors import ValidationError
from label_types import ElementKind, LabelDocument

# Float noise tolerance when rounding the canvas up to whole pixels.
_CEIL_EPSILON = 1e-9


@dataclass(frozen=True)
class ScaledDocument:
    """A document copy expressed in printer pixels plus its canvas size."""

    document: LabelDocument
    scale: float
    pixel_width: int
    pixel_height: int
    source_dpi: float
    target_dpi: float


def scale_factor(printer_dpi: float, design_dpi: float) -> float:
    """Return ``printer_dpi / design_dpi`` without integer truncation."""

    if printer_dpi <= 0 or design_dpi <= 0:
        raise ValidationError("DPI values must be positive.")
    return float(printer_dpi) / float(design_dpi)


def canvas_pixels(length: float, scale: float) -> int:
    return max(int(math.ceil(length * scale - _CEIL_EPSILON)), 0)


def scale_document(
    document: LabelDocument,
    scale: float,
    *,
    source_dpi: float = 0.0,
    target_dpi: float = 0.0,
) -> ScaledDocument:
    """Return a scaled deep copy of ``document``; the source is untouched."""

    if scale <= 0:
        raise ValidationError(f"Scale factor must be positive, got {scale}.")

    scaled = document.copy()
    scaled.width = document.width * scale
    scaled.height = document.height * scale
    for element in scaled.elements:
        element.x *= scale
        element.y *= scale
        element.width *= scale
        element.height *= scale
        if element.kind is ElementKind.TEXT:
            element.font_size *= scale
        element.refresh_scale()

    return ScaledDocument(
        document=scaled,
        scale=scale,
        pixel_width=canvas_pixels(document.width, scale),
        pixel_height=canvas_pixels(document.height, scale),
        source_dpi=source_dpi,
        target_dpi=target_dpi,
    )


def scale_for_printer(document: LabelDocument, config: PrinterConfig) -> ScaledDocument:
    """Scale ``document`` from the configured design DPI to the printer DPI."""

    return scale_document(
        document,
        scale_factor(config.printer_dpi, config.design_dpi),
        source_dpi=config.design_dpi,
        target_dpi=config.printer_dpi,
    )
