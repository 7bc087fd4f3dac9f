"""ZPL command records and their text form."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Union

from PIL import Image, ImageOps

from label_errors import EncodingError

# Printer RAM; downloaded graphics live there until power-off.
STORAGE_RAM = "R"
GRAPHIC_EXTENSION = "GRF"
MAX_RESOURCE_NAME = 8
# Gray levels below this become printed dots.
INK_THRESHOLD = 128

_FIELD_ESCAPES = {"_": "_5F", "^": "_5E", "~": "_7E"}
_ORIENTATIONS = ("N", "R", "I", "B")


def orientation_for(rotation: float) -> str:
    """Map a clockwise rotation in degrees to the nearest ZPL orientation."""

    quarter = int(round((rotation % 360) / 90.0)) % 4
    return _ORIENTATIONS[quarter]


@dataclass(frozen=True)
class GraphicData:
    """A 1 bpp bitmap in the ``~DG`` hex layout."""

    total_bytes: int
    bytes_per_row: int
    hex_data: str


def raster_to_graphic(
    payload: bytes,
    width: int | None = None,
    height: int | None = None,
    *,
    rotation: float = 0.0,
    threshold: int = INK_THRESHOLD,
) -> GraphicData:
    """Convert image bytes (PNG, JPEG, ...) into printer graphic data.

    Transparent areas are treated as paper. When ``width``/``height`` are
    given the bitmap is resized with nearest-neighbour sampling first.
    """

    try:
        with Image.open(BytesIO(payload)) as source:
            source.load()
            if source.mode in ("RGBA", "LA", "PA") or "transparency" in source.info:
                rgba = source.convert("RGBA")
                paper = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
                paper.alpha_composite(rgba)
                gray = paper.convert("L")
            else:
                gray = source.convert("L")
    except (OSError, ValueError) as exc:
        raise EncodingError(f"Raster payload is not a readable image: {exc}") from exc

    if width and height and gray.size != (width, height):
        gray = gray.resize((width, height), Image.Resampling.NEAREST)
    if rotation % 360:
        gray = gray.rotate(-rotation, expand=True, fillcolor=255)

    # invert so that ink ends up as set bits
    ink = ImageOps.invert(gray).point(lambda p: 255 if p > 255 - threshold else 0)
    bitmap = ink.convert("1", dither=Image.Dither.NONE)

    bytes_per_row = (bitmap.width + 7) // 8
    data = bitmap.tobytes()
    return GraphicData(
        total_bytes=bytes_per_row * bitmap.height,
        bytes_per_row=bytes_per_row,
        hex_data=data.hex().upper(),
    )


def _escape_field_data(text: str) -> tuple[bool, str]:
    if not any(ch in text for ch in _FIELD_ESCAPES):
        return False, text
    return True, "".join(_FIELD_ESCAPES.get(ch, ch) for ch in text)


@dataclass(frozen=True)
class ZplTextField:
    x: int
    y: int
    text: str
    font_height: int
    font_width: int
    orientation: str = "N"

    def to_zpl(self) -> str:
        hex_escaped, data = _escape_field_data(self.text)
        field_hex = "^FH" if hex_escaped else ""
        return (
            f"^FO{self.x},{self.y}"
            f"^A0{self.orientation},{self.font_height},{self.font_width}"
            f"{field_hex}^FD{data}^FS"
        )


@dataclass(frozen=True)
class ZplDownloadGraphics:
    storage: str
    name: str
    graphic: GraphicData

    def to_zpl(self) -> str:
        return (
            f"~DG{self.storage}:{self.name}.{GRAPHIC_EXTENSION},"
            f"{self.graphic.total_bytes},{self.graphic.bytes_per_row},"
            f"{self.graphic.hex_data}"
        )


@dataclass(frozen=True)
class ZplRecallGraphic:
    x: int
    y: int
    storage: str
    name: str

    def to_zpl(self) -> str:
        return (
            f"^FO{self.x},{self.y}"
            f"^XG{self.storage}:{self.name}.{GRAPHIC_EXTENSION},1,1^FS"
        )


@dataclass(frozen=True)
class ZplRenderOptions:
    """Header block of a label format."""

    target_dpi: float
    source_dpi: float
    print_width: int
    label_length: int

    def to_zpl_lines(self) -> list[str]:
        return [
            f"^FX render-options target_dpi={self.target_dpi:g} source_dpi={self.source_dpi:g}",
            "^CI28",
            f"^PW{self.print_width}",
            f"^LL{self.label_length}",
        ]


ZplCommand = Union[ZplTextField, ZplDownloadGraphics, ZplRecallGraphic]


def render_zpl(commands: list[ZplCommand], options: ZplRenderOptions) -> str:
    """Serialize ``commands`` into one label format.

    Graphic downloads are emitted ahead of ``^XA`` so the printer stores
    them before the format recalls them. Everything else keeps its order.
    """

    lines = [cmd.to_zpl() for cmd in commands if isinstance(cmd, ZplDownloadGraphics)]
    lines.append("^XA")
    lines.extend(options.to_zpl_lines())
    for cmd in commands:
        if isinstance(cmd, ZplDownloadGraphics):
            continue
        lines.append("")
        lines.append(cmd.to_zpl())
    lines.append("^XZ")
    return "\n".join(lines) + "\n"
