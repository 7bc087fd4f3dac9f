"""Assemble printer command streams from a label document."""

from __future__ import annotations

import logging
import re
from enum import StrEnum
from typing import Mapping

import symbologies
from fonts import glyph_width, text_font_name
from label_config import PrinterConfig
from label_errors import EncodingError
from label_types import ElementKind, LabelDocument, LabelElement
from scale_transform import ScaledDocument, scale_for_printer
from scene_rendering import ReportLabSceneRenderer, SceneRenderer
from zpl_commands import (
    MAX_RESOURCE_NAME,
    STORAGE_RAM,
    ZplCommand,
    ZplDownloadGraphics,
    ZplRecallGraphic,
    ZplRenderOptions,
    ZplTextField,
    orientation_for,
    raster_to_graphic,
    render_zpl,
)

logger = logging.getLogger(__name__)

CANVAS_RESOURCE = "LABEL"
_INDEX_DIGITS = 3


class Strategy(StrEnum):
    ELEMENTS = "elements"
    CANVAS = "canvas"


def resource_name(element_name: str, index: int) -> str:
    """Printer-side graphic name for the element at ``index``.

    The zero-padded index keeps names unique within one stream even when
    element names share a prefix.
    """

    suffix = str(index).zfill(_INDEX_DIGITS)
    letters = re.sub(r"[^A-Z]", "", element_name.upper()) or "IMG"
    return letters[: max(MAX_RESOURCE_NAME - len(suffix), 0)] + suffix


def text_field(element: LabelElement, font_name: str) -> ZplTextField:
    font_height = max(int(round(element.font_size)), 1)
    font_width = max(int(round(glyph_width(font_name, element.font_size))), 1)
    return ZplTextField(
        x=int(round(element.x)),
        y=int(round(element.y)),
        text=element.content,
        font_height=font_height,
        font_width=font_width,
        orientation=orientation_for(element.rotation),
    )


def prepare_rasters(scaled: ScaledDocument) -> dict[int, bytes]:
    """Re-encode barcode elements at their printer-pixel size, keyed by z-index.

    An element whose payload cannot be encoded at that size keeps its
    last-good raster, if it has one.
    """

    rasters: dict[int, bytes] = {}
    for index, element in enumerate(scaled.document):
        if not element.kind.is_raster_backed:
            continue
        if element.kind.is_barcode:
            try:
                rasters[index] = symbologies.encode_png(
                    element.kind, element.content, element.width, element.height
                )
                continue
            except EncodingError as exc:
                logger.warning(
                    "Re-encoding '%s' failed, using last raster: %s", element.name, exc
                )
        if element.binary_payload:
            rasters[index] = element.binary_payload
    return rasters


def build_element_commands(
    scaled: ScaledDocument,
    rasters: Mapping[int, bytes] | None = None,
    *,
    font_name: str | None = None,
) -> list[ZplCommand]:
    """One text field or download/recall pair per element, in z-order.

    ``rasters`` is keyed by z-index; element names need not be unique.
    """

    rasters = rasters or {}
    font = font_name or text_font_name()
    commands: list[ZplCommand] = []
    for index, element in enumerate(scaled.document):
        if element.kind is ElementKind.TEXT:
            commands.append(text_field(element, font))
            continue

        payload = rasters.get(index, element.binary_payload)
        if not payload:
            logger.warning("Element '%s' has no raster; skipping.", element.name)
            continue
        try:
            graphic = raster_to_graphic(
                payload,
                max(int(round(element.width)), 1),
                max(int(round(element.height)), 1),
                rotation=element.rotation,
            )
        except EncodingError as exc:
            logger.warning("Skipping element '%s': %s", element.name, exc)
            continue

        name = resource_name(element.name, index)
        commands.append(ZplDownloadGraphics(STORAGE_RAM, name, graphic))
        commands.append(
            ZplRecallGraphic(
                int(round(element.x)), int(round(element.y)), STORAGE_RAM, name
            )
        )
    return commands


def build_canvas_commands(
    scaled: ScaledDocument,
    renderer: SceneRenderer,
) -> list[ZplCommand]:
    """Rasterize the whole canvas and place it at the origin."""

    png = renderer.render(
        scaled.document.elements,
        scaled.pixel_width,
        scaled.pixel_height,
        scaled.target_dpi,
    )
    graphic = raster_to_graphic(png, scaled.pixel_width, scaled.pixel_height)
    return [
        ZplDownloadGraphics(STORAGE_RAM, CANVAS_RESOURCE, graphic),
        ZplRecallGraphic(0, 0, STORAGE_RAM, CANVAS_RESOURCE),
    ]


def generate_zpl(
    document: LabelDocument,
    config: PrinterConfig,
    strategy: Strategy | str = Strategy.ELEMENTS,
    *,
    renderer: SceneRenderer | None = None,
    rasters: Mapping[int, bytes] | None = None,
) -> str:
    """Produce the complete command stream for ``document``.

    ``rasters`` overrides the per-element bitmaps by z-index; by default
    barcodes are re-encoded at printer resolution and images use their
    stored bytes.
    """

    try:
        strategy = Strategy(strategy)
    except ValueError as exc:
        raise EncodingError(f"Unknown generation strategy '{strategy}'.") from exc

    scaled = scale_for_printer(document, config)
    options = ZplRenderOptions(
        target_dpi=scaled.target_dpi,
        source_dpi=scaled.source_dpi,
        print_width=scaled.pixel_width,
        label_length=scaled.pixel_height,
    )
    prepared = dict(rasters) if rasters is not None else prepare_rasters(scaled)

    if strategy is Strategy.CANVAS:
        for index, element in enumerate(scaled.document):
            if index in prepared:
                element.binary_payload = prepared[index]
        commands = build_canvas_commands(scaled, renderer or ReportLabSceneRenderer())
    else:
        commands = build_element_commands(scaled, prepared)

    logger.info(
        "Generated %s label '%s' with %d elements (%dx%d px)",
        strategy,
        document.name,
        len(document),
        scaled.pixel_width,
        scaled.pixel_height,
    )
    return render_zpl(commands, options)


__all__ = [
    "CANVAS_RESOURCE",
    "Strategy",
    "build_canvas_commands",
    "build_element_commands",
    "generate_zpl",
    "prepare_rasters",
    "resource_name",
    "text_field",
]
