"""Shared helpers for rasterizing barcode module patterns."""

from __future__ import annotations

from io import BytesIO
from typing import List, Sequence

from PIL import Image, ImageDraw

from label_errors import EncodingError

ModuleMatrix = List[List[bool]]


def render_matrix(
    modules: Sequence[Sequence[bool]],
    width: int,
    height: int,
    quiet_zone: int,
) -> Image.Image:
    """Draw a 2D symbol with square modules centered in ``width`` x ``height``."""

    rows = len(modules)
    cols = len(modules[0]) if rows else 0
    if not rows or not cols:
        raise EncodingError("Symbol has no modules to draw.")

    total_cols = cols + 2 * quiet_zone
    total_rows = rows + 2 * quiet_zone
    module = min(width // total_cols, height // total_rows)
    if module < 1:
        raise EncodingError(
            f"Raster {width}x{height} is smaller than the {total_cols}x{total_rows} "
            "modules the symbol needs including its quiet zone."
        )

    return _draw(modules, width, height, module, module)


def render_linear(
    bars: Sequence[bool],
    width: int,
    height: int,
    quiet_zone: int,
    *,
    min_bar_height: int,
) -> Image.Image:
    """Draw a 1D symbol stretched vertically, centered with a quiet zone."""

    if not bars:
        raise EncodingError("Symbol has no modules to draw.")

    total_cols = len(bars) + 2 * quiet_zone
    module = width // total_cols
    if module < 1:
        raise EncodingError(
            f"Raster width {width} is smaller than the {total_cols} modules "
            "the symbol needs including its quiet zone."
        )

    bar_height = height - 2 * module
    if bar_height < min_bar_height:
        raise EncodingError(
            f"Raster height {height} leaves less than {min_bar_height}px of bar."
        )

    return _draw([list(bars)], width, height, module, bar_height)


def _draw(
    modules: Sequence[Sequence[bool]],
    width: int,
    height: int,
    module_width: int,
    module_height: int,
) -> Image.Image:
    image = Image.new("1", (width, height), 1)
    draw = ImageDraw.Draw(image)

    symbol_width = len(modules[0]) * module_width
    symbol_height = len(modules) * module_height
    left = (width - symbol_width) // 2
    top = (height - symbol_height) // 2

    for row_idx, row in enumerate(modules):
        y0 = top + row_idx * module_height
        y1 = y0 + module_height - 1
        col = 0
        while col < len(row):
            if not row[col]:
                col += 1
                continue
            # merge runs of dark modules into a single rectangle
            start = col
            while col < len(row) and row[col]:
                col += 1
            x0 = left + start * module_width
            x1 = left + col * module_width - 1
            draw.rectangle((x0, y0, x1, y1), fill=0)
    return image


def modules_from_raster(image: Image.Image) -> ModuleMatrix:
    """Recover the module grid of a Data Matrix raster with any module size.

    The top edge of a Data Matrix symbol is an alternating timing pattern,
    so the number of runs along it equals the number of module columns.
    """

    gray = image.convert("L")
    dark = gray.point(lambda p: 255 if p < 128 else 0)
    bbox = dark.getbbox()
    if bbox is None:
        raise EncodingError("Encoder produced an empty raster.")
    left, top, right, bottom = bbox

    cols = 0
    previous = None
    for x in range(left, right):
        current = dark.getpixel((x, top)) > 0
        if current != previous:
            cols += 1
            previous = current

    module = (right - left) / cols
    rows = int(round((bottom - top) / module))

    matrix: ModuleMatrix = []
    for row in range(rows):
        y = int(top + (row + 0.5) * module)
        matrix.append(
            [
                dark.getpixel((int(left + (col + 0.5) * module), y)) > 0
                for col in range(cols)
            ]
        )
    return matrix


def to_png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
