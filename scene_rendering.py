"""Whole-canvas rasterization of label elements."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Protocol, Sequence

import fitz
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import getAscent
from reportlab.pdfgen import canvas

from fonts import text_font_name
from label_errors import ValidationError
from label_types import ElementKind, LabelElement

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0


class SceneRenderer(Protocol):
    def render(
        self,
        elements: Sequence[LabelElement],
        pixel_width: int,
        pixel_height: int,
        dpi: float,
    ) -> bytes:
        """Return PNG bytes of ``elements`` composed on a blank canvas."""


class ReportLabSceneRenderer:
    """Draw elements on a PDF page and rasterize it with PyMuPDF."""

    def __init__(self, font_name: str | None = None) -> None:
        self.font_name = font_name or text_font_name()

    def render(
        self,
        elements: Sequence[LabelElement],
        pixel_width: int,
        pixel_height: int,
        dpi: float,
    ) -> bytes:
        if pixel_width <= 0 or pixel_height <= 0:
            raise ValidationError(
                f"Canvas has invalid size {pixel_width}x{pixel_height}."
            )
        if dpi <= 0:
            raise ValidationError("Render DPI must be positive.")

        pt = POINTS_PER_INCH / dpi
        page_width = pixel_width * pt
        page_height = pixel_height * pt

        buffer = BytesIO()
        canvas_obj = canvas.Canvas(buffer, pagesize=(page_width, page_height))
        for element in elements:
            canvas_obj.saveState()
            # element origin is its top-left corner; rotation is clockwise
            canvas_obj.translate(element.x * pt, page_height - element.y * pt)
            canvas_obj.rotate(-element.rotation)
            if element.kind is ElementKind.TEXT:
                self._draw_text(canvas_obj, element, pt)
            else:
                self._draw_raster(canvas_obj, element, pt)
            canvas_obj.restoreState()
        canvas_obj.showPage()
        canvas_obj.save()

        pdf_bytes = buffer.getvalue()
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            page = doc.load_page(0)
            pix = page.get_pixmap(dpi=int(round(dpi)))
            return pix.tobytes("png")

    def _draw_text(
        self,
        canvas_obj: canvas.Canvas,
        element: LabelElement,
        pt: float,
    ) -> None:
        size = element.font_size * pt
        canvas_obj.setFont(self.font_name, size)
        canvas_obj.drawString(0, -getAscent(self.font_name, size), element.content)

    def _draw_raster(
        self,
        canvas_obj: canvas.Canvas,
        element: LabelElement,
        pt: float,
    ) -> None:
        if not element.binary_payload:
            logger.warning("Element '%s' has no raster; skipping.", element.name)
            return
        try:
            reader = ImageReader(BytesIO(element.binary_payload))
        except OSError as exc:
            logger.warning("Element '%s' raster is unreadable: %s", element.name, exc)
            return

        height = element.height * pt
        canvas_obj.drawImage(
            reader,
            0,
            -height,
            width=element.width * pt,
            height=height,
            mask="auto",
        )
