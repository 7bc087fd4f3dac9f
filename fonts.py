"""Font registration for the scene renderer and glyph metrics."""

from __future__ import annotations

import os
import re
from pathlib import Path

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont as ReportLabTTFont

FONTS_DIR = Path(__file__).resolve().parent / "fonts"
# Built into ReportLab; Latin-1 only.
DEFAULT_FONT = "Helvetica"


class FontRegistry:
    """Register TrueType files with ReportLab once per path."""

    def __init__(self) -> None:
        self._registered: dict[Path, str] = {}

    def get_font_name(self, font_path: Path) -> str:
        path = font_path if font_path.is_absolute() else FONTS_DIR / font_path
        path = path.resolve()
        cached = self._registered.get(path)
        if cached:
            return cached

        if not path.exists():
            raise SystemExit(f"Font file '{path}' is missing.")

        font_name = self._safe_font_name(path.stem)
        pdfmetrics.registerFont(ReportLabTTFont(font_name, str(path)))
        self._registered[path] = font_name
        return font_name

    def _safe_font_name(self, s: str) -> str:
        return re.sub(r"[^A-Za-z0-9-]", "", s)[:63] or "LabelFont"


_REGISTRY = FontRegistry()


def text_font_name(font_path: str | None = None) -> str:
    """Return the ReportLab font used for text elements.

    ``font_path`` (or ``LABEL_FONT_PATH``) selects a TTF, which is needed for
    text outside Latin-1 such as Cyrillic.
    """

    path = font_path or os.getenv("LABEL_FONT_PATH")
    if not path:
        return DEFAULT_FONT
    return _REGISTRY.get_font_name(Path(path))


def glyph_width(font_name: str, font_size: float) -> float:
    """Average glyph advance for ``font_size``, measured on a digit."""

    return pdfmetrics.stringWidth("0", font_name, font_size)


__all__ = [
    "DEFAULT_FONT",
    "glyph_width",
    "text_font_name",
]
