"""JSON project files: save and load a label document."""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from label_errors import MalformedProjectError, ProjectIoError, ValidationError
from label_types import ElementKind, LabelDocument, LabelElement

logger = logging.getLogger(__name__)

# Element type names written by older project files.
_LEGACY_KINDS = {"Ean128": ElementKind.CODE128}


class ElementData(BaseModel):
    model_config = ConfigDict(
        strict=True, populate_by_name=True, allow_inf_nan=False
    )

    name: str = Field("", alias="name")
    type: str = Field(..., alias="type", description="Element kind name")
    x: float = Field(0.0, alias="x")
    y: float = Field(0.0, alias="y")
    width: float = Field(0.0, alias="width")
    height: float = Field(0.0, alias="height")
    data: Optional[str] = Field(None, alias="data", description="Base64 raster bytes")
    content: str = Field("", alias="content")
    path: str = Field("", alias="path", description="Source file of an image")
    original_width: float = Field(0.0, alias="originalWidth")
    original_height: float = Field(0.0, alias="originalHeight")
    scale_x: float = Field(1.0, alias="scaleX")
    scale_y: float = Field(1.0, alias="scaleY")
    font_size: float = Field(12.0, alias="fontSize")
    rotation: float = Field(0.0, alias="rotation")


class ProjectData(BaseModel):
    model_config = ConfigDict(
        strict=True, populate_by_name=True, allow_inf_nan=False
    )

    label_name: str = Field("", alias="labelName")
    label_width: float = Field(100.0, alias="labelWidth")
    label_height: float = Field(100.0, alias="labelHeight")
    elements: list[ElementData] = Field(default_factory=list, alias="elements")


def _element_to_data(element: LabelElement) -> ElementData:
    data = None
    if element.binary_payload is not None:
        data = base64.b64encode(element.binary_payload).decode("ascii")
    return ElementData(
        name=element.name,
        type=element.kind.value,
        x=float(element.x),
        y=float(element.y),
        width=float(element.width),
        height=float(element.height),
        data=data,
        content=element.content,
        path=element.source_path,
        original_width=float(element.original_width),
        original_height=float(element.original_height),
        scale_x=float(element.scale_x),
        scale_y=float(element.scale_y),
        font_size=float(element.font_size),
        rotation=float(element.rotation),
    )


def _kind_from_name(name: str) -> ElementKind:
    if name in _LEGACY_KINDS:
        return _LEGACY_KINDS[name]
    try:
        return ElementKind(name)
    except ValueError as exc:
        raise MalformedProjectError(f"Unknown element type '{name}'.") from exc


def _data_to_element(item: ElementData) -> LabelElement:
    payload = None
    if item.data is not None:
        try:
            payload = base64.b64decode(item.data, validate=True)
        except binascii.Error as exc:
            raise MalformedProjectError(
                f"Element '{item.name}' has invalid base64 data."
            ) from exc

    return LabelElement(
        name=item.name,
        kind=_kind_from_name(item.type),
        x=item.x,
        y=item.y,
        width=item.width,
        height=item.height,
        content=item.content,
        binary_payload=payload,
        source_path=item.path,
        original_width=item.original_width,
        original_height=item.original_height,
        scale_x=item.scale_x,
        scale_y=item.scale_y,
        font_size=item.font_size,
        rotation=item.rotation,
    )


def save(document: LabelDocument) -> str:
    """Serialize ``document`` to indented JSON."""

    project = ProjectData(
        label_name=document.name,
        label_width=float(document.width),
        label_height=float(document.height),
        elements=[_element_to_data(element) for element in document],
    )
    return project.model_dump_json(by_alias=True, indent=2)


def load(text: str | bytes) -> LabelDocument:
    """Parse project JSON into a new document.

    Raises ``MalformedProjectError`` for unparseable JSON, wrong field types,
    bad base64, unknown element types and elements that break model rules.
    """

    try:
        project = ProjectData.model_validate_json(text)
    except pydantic.ValidationError as exc:
        raise MalformedProjectError(f"Project file is malformed: {exc}") from exc

    try:
        return LabelDocument(
            name=project.label_name,
            width=project.label_width,
            height=project.label_height,
            elements=[_data_to_element(item) for item in project.elements],
        )
    except ValidationError as exc:
        raise MalformedProjectError(f"Project file is invalid: {exc}") from exc


def save_to_file(path: str | Path, document: LabelDocument) -> None:
    text = save(document)
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ProjectIoError(f"Cannot write project '{path}': {exc}") from exc
    logger.info("Saved project '%s' to %s", document.name, path)


def load_from_file(path: str | Path) -> LabelDocument:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedProjectError(f"Project '{path}' is not UTF-8 text.") from exc
    except OSError as exc:
        raise ProjectIoError(f"Cannot read project '{path}': {exc}") from exc
    document = load(text)
    logger.info("Loaded project '%s' from %s", document.name, path)
    return document


__all__ = [
    "ElementData",
    "ProjectData",
    "load",
    "load_from_file",
    "save",
    "save_to_file",
]
