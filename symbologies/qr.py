"""QR code symbology."""

from __future__ import annotations

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from label_errors import EncodingError
from label_types import ElementKind
from .base import SymbologyEncoder
from .utils import ModuleMatrix

# 25x25 mm at 304 dpi.
DEFAULT_SIZE = 300


class Encoder(SymbologyEncoder):
    kind = ElementKind.QR_CODE
    quiet_zone = 4
    two_dimensional = True

    def default_size(self, payload: str) -> tuple[int, int]:
        return DEFAULT_SIZE, DEFAULT_SIZE

    def build_modules(self, payload: str) -> ModuleMatrix:
        qr = qrcode.QRCode(border=0, error_correction=ERROR_CORRECT_M)
        qr.add_data(payload)
        try:
            qr.make(fit=True)
        except DataOverflowError as exc:
            raise EncodingError(
                f"Payload of {len(payload)} characters does not fit in a QR code."
            ) from exc
        return [[bool(cell) for cell in row] for row in qr.get_matrix()]
