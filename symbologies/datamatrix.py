"""Data Matrix (ECC200) symbology."""

from __future__ import annotations

from PIL import Image
from pylibdmtx.pylibdmtx import encode as dmtx_encode
from pylibdmtx.pylibdmtx_error import PyLibDMTXError

from label_errors import EncodingError
from label_types import ElementKind
from .base import SymbologyEncoder
from .utils import ModuleMatrix, modules_from_raster

# 12.5x12.5 mm at 304 dpi.
DEFAULT_SIZE = 150


class Encoder(SymbologyEncoder):
    kind = ElementKind.DATA_MATRIX
    quiet_zone = 2
    two_dimensional = True

    def default_size(self, payload: str) -> tuple[int, int]:
        return DEFAULT_SIZE, DEFAULT_SIZE

    def build_modules(self, payload: str) -> ModuleMatrix:
        try:
            encoded = dmtx_encode(payload.encode("utf-8"))
        except PyLibDMTXError as exc:
            raise EncodingError(f"Cannot encode Data Matrix '{payload}': {exc}") from exc
        raster = Image.frombytes("RGB", (encoded.width, encoded.height), encoded.pixels)
        return modules_from_raster(raster)
