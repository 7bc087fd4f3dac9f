"""Symbology loader for barcode raster generation."""

from __future__ import annotations

from importlib import import_module
from typing import Iterable

from PIL import Image

from label_errors import EncodingError
from label_types import ElementKind
from .base import SymbologyEncoder
from .utils import to_png_bytes

_SYMBOLOGY_MODULES = {
    ElementKind.QR_CODE: "qr",
    ElementKind.EAN13: "ean13",
    ElementKind.CODE128: "code128",
    ElementKind.DATA_MATRIX: "datamatrix",
}


def _load_symbology_module(kind: ElementKind):
    return import_module(f"{__name__}.{_SYMBOLOGY_MODULES[kind]}")


def _as_kind(kind: ElementKind | str) -> ElementKind:
    try:
        return ElementKind(kind)
    except ValueError as exc:
        raise EncodingError(f"Unknown element kind '{kind}'.") from exc


def get_encoder(kind: ElementKind | str) -> SymbologyEncoder:
    """Instantiate the encoder implementation for ``kind``."""

    key = _as_kind(kind)
    if key not in _SYMBOLOGY_MODULES:
        available = ", ".join(list_symbologies())
        raise EncodingError(
            f"'{key}' is not a barcode symbology. Available: {available}"
        )

    module = _load_symbology_module(key)
    encoder_cls: type[SymbologyEncoder] | None = getattr(module, "Encoder", None)
    if not encoder_cls or not issubclass(encoder_cls, SymbologyEncoder):
        raise EncodingError(
            f"Symbology '{key}' does not export a valid Encoder class"
        )
    return encoder_cls()


def list_symbologies() -> Iterable[str]:
    """Return the supported symbology identifiers."""

    return sorted(kind.value for kind in _SYMBOLOGY_MODULES)


def encode(
    kind: ElementKind | str,
    payload: str,
    width: float | None = None,
    height: float | None = None,
) -> Image.Image:
    """Return a monochrome raster of ``payload`` sized ``width`` x ``height``."""

    return get_encoder(kind).encode(payload, width, height)


def encode_png(
    kind: ElementKind | str,
    payload: str,
    width: float | None = None,
    height: float | None = None,
) -> bytes:
    return to_png_bytes(encode(kind, payload, width, height))


__all__ = [
    "SymbologyEncoder",
    "encode",
    "encode_png",
    "get_encoder",
    "list_symbologies",
]
