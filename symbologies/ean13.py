"""EAN-13 symbology with check digit handling."""

from __future__ import annotations

from barcode import EAN13
from barcode.errors import BarcodeError

from label_errors import EncodingError, ValidationError
from label_types import ElementKind
from .base import SymbologyEncoder
from .utils import ModuleMatrix

BODY_LENGTH = 12
# 38x25 mm at 304 dpi.
DEFAULT_WIDTH = 460
DEFAULT_HEIGHT = 300


def _is_digits(text: str) -> bool:
    return text.isascii() and text.isdigit()


def check_digit(body: str) -> int:
    """Return the mod-10 check digit for a 12-digit EAN body.

    Weights alternate 1, 3, 1, 3, ... starting from the leftmost digit.
    """

    if len(body) != BODY_LENGTH or not _is_digits(body):
        raise ValidationError(f"EAN-13 body must be {BODY_LENGTH} digits, got '{body}'.")
    total = sum(int(digit) * (3 if idx % 2 else 1) for idx, digit in enumerate(body))
    return (10 - total % 10) % 10


def append_check_digit(body: str) -> str:
    return f"{body}{check_digit(body)}"


class Encoder(SymbologyEncoder):
    kind = ElementKind.EAN13
    quiet_zone = 10
    two_dimensional = False

    def default_size(self, payload: str) -> tuple[int, int]:
        return DEFAULT_WIDTH, DEFAULT_HEIGHT

    def normalize_payload(self, payload: str) -> str:
        text = super().normalize_payload(payload).strip()
        if not _is_digits(text) or len(text) not in (BODY_LENGTH, BODY_LENGTH + 1):
            raise ValidationError(
                f"EAN-13 payload must be 12 or 13 digits, got '{payload}'."
            )
        full = append_check_digit(text[:BODY_LENGTH])
        if len(text) == BODY_LENGTH + 1 and text != full:
            raise ValidationError(
                f"EAN-13 check digit of '{text}' is wrong; expected '{full[-1]}'."
            )
        return full

    def build_modules(self, payload: str) -> ModuleMatrix:
        try:
            pattern = EAN13(payload[:BODY_LENGTH]).build()[0]
        except BarcodeError as exc:
            raise EncodingError(f"Cannot encode EAN-13 '{payload}': {exc}") from exc
        return [[module != "0" for module in pattern]]
