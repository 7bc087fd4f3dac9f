"""Document model for labels composed on the design canvas."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Iterator

from label_errors import ValidationError


class ElementKind(StrEnum):
    TEXT = "Text"
    IMAGE = "Image"
    QR_CODE = "QrCode"
    EAN13 = "Ean13"
    CODE128 = "Code128"
    DATA_MATRIX = "DataMatrix"

    @property
    def is_barcode(self) -> bool:
        return self not in (ElementKind.TEXT, ElementKind.IMAGE)

    @property
    def is_raster_backed(self) -> bool:
        return self is not ElementKind.TEXT


_FINITE_FIELDS = (
    "x",
    "y",
    "width",
    "height",
    "original_width",
    "original_height",
    "scale_x",
    "scale_y",
    "font_size",
    "rotation",
)


@dataclass
class LabelElement:
    """A single item placed on the label, in design-resolution units.

    ``kind`` is fixed once the element exists; changing the type of an
    element means removing it and creating a new one.
    """

    name: str
    kind: ElementKind
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    content: str = ""
    binary_payload: bytes | None = None
    source_path: str = ""
    original_width: float = 0.0
    original_height: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    font_size: float = 12.0
    rotation: float = 0.0

    def __post_init__(self) -> None:
        self.validate()

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "kind" and "kind" in self.__dict__:
            raise AttributeError("Element kind cannot change once created.")
        super().__setattr__(name, value)

    def validate(self) -> None:
        """Raise ``ValidationError`` when the element breaks a model invariant."""

        for attr in _FINITE_FIELDS:
            if not math.isfinite(getattr(self, attr)):
                raise ValidationError(
                    f"Element '{self.name}' has a non-finite {attr}."
                )
        for attr in ("x", "y", "width", "height"):
            if getattr(self, attr) < 0:
                raise ValidationError(
                    f"Element '{self.name}' has negative {attr}."
                )
        if self.kind is not ElementKind.IMAGE and not self.content.strip():
            raise ValidationError(
                f"Element '{self.name}' of kind {self.kind} needs content."
            )

    def refresh_scale(self) -> None:
        """Recompute ``scale_x``/``scale_y`` from the current size."""

        if self.original_width > 0:
            self.scale_x = self.width / self.original_width
        if self.original_height > 0:
            self.scale_y = self.height / self.original_height


@dataclass
class LabelDocument:
    """The label canvas; element order is the rendering z-order."""

    name: str = ""
    width: float = 100.0
    height: float = 100.0
    elements: list[LabelElement] = field(default_factory=list[LabelElement])

    def __post_init__(self) -> None:
        if not (math.isfinite(self.width) and math.isfinite(self.height)):
            raise ValidationError("Label dimensions must be finite.")
        if self.width < 0 or self.height < 0:
            raise ValidationError("Label dimensions cannot be negative.")

    def __iter__(self) -> Iterator[LabelElement]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def find(self, name: str) -> LabelElement | None:
        for element in self.elements:
            if element.name == name:
                return element
        return None

    def index_of(self, name: str) -> int:
        for idx, element in enumerate(self.elements):
            if element.name == name:
                return idx
        raise KeyError(name)

    def copy(self) -> LabelDocument:
        """Return a deep copy safe to hand to another thread."""

        return copy.deepcopy(self)
