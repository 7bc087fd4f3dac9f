"""Code 128 symbology."""

from __future__ import annotations

from barcode import Code128
from barcode.errors import BarcodeError

from label_errors import EncodingError, ValidationError
from label_types import ElementKind
from .base import SymbologyEncoder
from .utils import ModuleMatrix

MIN_WIDTH = 300
# Roughly 20 characters need 600px at 304 dpi to stay scannable.
WIDTH_PER_CHAR = 30
DEFAULT_HEIGHT = 300


class Encoder(SymbologyEncoder):
    kind = ElementKind.CODE128
    quiet_zone = 10
    two_dimensional = False

    def default_size(self, payload: str) -> tuple[int, int]:
        return max(MIN_WIDTH, len(payload) * WIDTH_PER_CHAR), DEFAULT_HEIGHT

    def normalize_payload(self, payload: str) -> str:
        text = super().normalize_payload(payload)
        if not text.isascii():
            raise ValidationError(
                f"Code 128 payload must be ASCII, got '{payload}'."
            )
        return text

    def build_modules(self, payload: str) -> ModuleMatrix:
        try:
            pattern = Code128(payload).build()[0]
        except (BarcodeError, KeyError) as exc:
            raise EncodingError(f"Cannot encode Code 128 '{payload}': {exc}") from exc
        return [[module != "0" for module in pattern]]
