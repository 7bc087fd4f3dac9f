"""Editing session: the single writer of a label document."""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from io import BytesIO
from pathlib import Path
from typing import Callable

from PIL import Image, UnidentifiedImageError

import project_serializer
import symbologies
from label_config import PrinterConfig
from label_errors import EncodingError, ValidationError
from label_types import ElementKind, LabelDocument, LabelElement
from printer_transport import PrinterClient
from scene_rendering import SceneRenderer
from symbologies.utils import to_png_bytes
from zpl_generation import Strategy, generate_zpl

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.1
DEFAULT_ORIGIN = 50.0
DEFAULT_TEXT = "Edit Me"
DEFAULT_CODE128 = "00046070699704096210"

_NAME_PREFIXES = {
    ElementKind.TEXT: "Text",
    ElementKind.IMAGE: "IMG",
    ElementKind.QR_CODE: "QR",
    ElementKind.EAN13: "EAN13",
    ElementKind.CODE128: "Code128",
    ElementKind.DATA_MATRIX: "DataMatrix",
}


class EventType(StrEnum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    CLEARED = "cleared"
    RASTER_UPDATED = "raster_updated"
    ENCODING_FAILED = "encoding_failed"
    LOADED = "loaded"


@dataclass(frozen=True)
class DocumentEvent:
    type: EventType
    element_name: str = ""
    error: Exception | None = None


Observer = Callable[[DocumentEvent], None]


class LabelSession:
    """Owns one document and serializes every change to it.

    Observers are called after the lock is released, on the thread that
    made the change (or on the re-encode thread for raster updates).
    """

    def __init__(
        self,
        document: LabelDocument | None = None,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE,
        max_workers: int = 2,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._document = document if document is not None else LabelDocument()
        self._lock = threading.RLock()
        self._observers: list[Observer] = []
        self._timers: dict[str, threading.Timer] = {}
        self._generations: dict[str, int] = {}
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="label-session"
        )
        self._debounce = debounce_seconds
        self._clock = clock
        self._closed = False

    def __enter__(self) -> LabelSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Observers

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""

        with self._lock:
            self._observers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return unsubscribe

    def _notify(self, event: DocumentEvent) -> None:
        with self._lock:
            observers = list(self._observers)
        for callback in observers:
            callback(event)

    # Reading

    @property
    def document(self) -> LabelDocument:
        return self._document

    def snapshot(self) -> LabelDocument:
        """Deep copy of the current document for use outside the session."""

        with self._lock:
            return self._document.copy()

    def element(self, name: str) -> LabelElement:
        with self._lock:
            return self._document.elements[self._document.index_of(name)]

    # Adding elements

    def _unique_name(self, base: str) -> str:
        taken = {element.name for element in self._document}
        if base not in taken:
            return base
        n = 2
        while f"{base}_{n}" in taken:
            n += 1
        return f"{base}_{n}"

    def _generated_name(self, kind: ElementKind) -> str:
        prefix = _NAME_PREFIXES[kind]
        taken = {element.name for element in self._document}
        n = len(self._document) + 1
        while f"{prefix}_{n}" in taken:
            n += 1
        return f"{prefix}_{n}"

    def _append(self, element: LabelElement) -> LabelElement:
        self._document.elements.append(element)
        return element

    def add_text(
        self,
        content: str = DEFAULT_TEXT,
        *,
        x: float = DEFAULT_ORIGIN,
        y: float = DEFAULT_ORIGIN,
        width: float = 120.0,
        height: float = 30.0,
        font_size: float = 16.0,
    ) -> LabelElement:
        with self._lock:
            element = self._append(
                LabelElement(
                    name=self._generated_name(ElementKind.TEXT),
                    kind=ElementKind.TEXT,
                    x=x,
                    y=y,
                    width=width,
                    height=height,
                    content=content,
                    original_width=width,
                    original_height=height,
                    font_size=font_size,
                )
            )
        self._notify(DocumentEvent(EventType.ADDED, element.name))
        return element

    def default_content(self, kind: ElementKind) -> str:
        now = self._clock()
        if kind is ElementKind.QR_CODE:
            return f"QR-{self._document.name}-{now:%H%M%S}"
        if kind is ElementKind.EAN13:
            return now.strftime("%y%m%d%H%M%S")
        if kind is ElementKind.DATA_MATRIX:
            return f"DM-X:{self._document.width:.0f},Y:{self._document.height:.0f}"
        return DEFAULT_CODE128

    def add_barcode(
        self,
        kind: ElementKind | str,
        content: str | None = None,
        *,
        x: float = DEFAULT_ORIGIN,
        y: float = DEFAULT_ORIGIN,
    ) -> LabelElement:
        """Encode ``content`` at the symbology's default size and add it.

        Raises ``ValidationError``/``EncodingError`` when the payload cannot be
        encoded; nothing is added in that case.
        """

        encoder = symbologies.get_encoder(kind)
        kind = encoder.kind
        if content is None:
            with self._lock:
                content = self.default_content(kind)

        image = encoder.encode(content)
        payload = to_png_bytes(image)
        width, height = image.size
        prefix = _NAME_PREFIXES[kind]

        with self._lock:
            element = self._append(
                LabelElement(
                    name=self._generated_name(kind),
                    kind=kind,
                    x=x,
                    y=y,
                    width=width,
                    height=height,
                    content=content,
                    binary_payload=payload,
                    source_path=f"Generated:{prefix}='{content}'",
                    original_width=width,
                    original_height=height,
                )
            )
        self._notify(DocumentEvent(EventType.ADDED, element.name))
        return element

    def add_image(
        self,
        path: str | Path,
        *,
        x: float = DEFAULT_ORIGIN,
        y: float = DEFAULT_ORIGIN,
    ) -> LabelElement:
        """Add the image at ``path`` at its own pixel size.

        ``OSError`` from reading the file propagates; unreadable image data
        raises ``ValidationError``.
        """

        path = Path(path)
        data = path.read_bytes()
        try:
            with Image.open(BytesIO(data)) as img:
                width, height = img.size
        except UnidentifiedImageError as exc:
            raise ValidationError(f"'{path}' is not a supported image.") from exc

        with self._lock:
            element = self._append(
                LabelElement(
                    name=self._unique_name(path.stem or "IMG1"),
                    kind=ElementKind.IMAGE,
                    x=x,
                    y=y,
                    width=width,
                    height=height,
                    binary_payload=data,
                    source_path=str(path),
                    original_width=width,
                    original_height=height,
                )
            )
        self._notify(DocumentEvent(EventType.ADDED, element.name))
        return element

    def add_image_async(self, path: str | Path) -> Future[LabelElement]:
        return self._executor.submit(self.add_image, path)

    # Editing

    def move(self, name: str, dx: float, dy: float) -> LabelElement:
        """Shift an element by a drag delta, stopping at the canvas origin."""

        if not (math.isfinite(dx) and math.isfinite(dy)):
            raise ValidationError(
                f"Element '{name}' cannot move by a non-finite delta."
            )
        with self._lock:
            element = self.element(name)
            element.x = max(element.x + dx, 0.0)
            element.y = max(element.y + dy, 0.0)
        self._notify(DocumentEvent(EventType.UPDATED, name))
        return element

    def resize(self, name: str, width: float, height: float) -> LabelElement:
        if not (math.isfinite(width) and math.isfinite(height)):
            raise ValidationError(f"Element '{name}' needs a finite size.")
        if width < 0 or height < 0:
            raise ValidationError(f"Element '{name}' cannot have a negative size.")
        with self._lock:
            element = self.element(name)
            element.width = width
            element.height = height
            element.refresh_scale()
        self._notify(DocumentEvent(EventType.UPDATED, name))
        return element

    def rotate(self, name: str, degrees: float) -> LabelElement:
        """Turn an element clockwise by ``degrees``."""

        if not math.isfinite(degrees):
            raise ValidationError(f"Element '{name}' cannot rotate by {degrees}.")
        with self._lock:
            element = self.element(name)
            element.rotation = (element.rotation + degrees) % 360
        self._notify(DocumentEvent(EventType.UPDATED, name))
        return element

    def set_content(self, name: str, content: str) -> LabelElement:
        """Change an element's text; barcodes are re-encoded after a pause.

        Rapid edits collapse into one re-encode once the content has been
        stable for the debounce interval.
        """

        with self._lock:
            element = self.element(name)
            if element.kind is not ElementKind.IMAGE and not content.strip():
                raise ValidationError(f"Element '{name}' needs content.")
            element.content = content
            if element.kind.is_barcode:
                self._schedule_reencode(name)
        self._notify(DocumentEvent(EventType.UPDATED, name))
        return element

    def _schedule_reencode(self, name: str) -> None:
        generation = self._generations.get(name, 0) + 1
        self._generations[name] = generation
        previous = self._timers.pop(name, None)
        if previous is not None:
            previous.cancel()
        if self._closed:
            return
        timer = threading.Timer(self._debounce, self._reencode, args=(name, generation))
        timer.daemon = True
        self._timers[name] = timer
        timer.start()

    def _reencode(self, name: str, generation: int) -> None:
        with self._lock:
            if self._generations.get(name) != generation:
                return
            element = self._document.find(name)
            if element is None:
                return
            kind = element.kind
            content = element.content
            width = element.original_width or element.width
            height = element.original_height or element.height

        event: DocumentEvent | None = None
        try:
            payload = symbologies.encode_png(kind, content, width, height)
        except EncodingError as exc:
            logger.warning("Keeping last raster of '%s': %s", name, exc)
            event = DocumentEvent(EventType.ENCODING_FAILED, name, exc)
        else:
            with self._lock:
                current = self._document.find(name)
                if (
                    current is not None
                    and self._generations.get(name) == generation
                    and current.content == content
                ):
                    current.binary_payload = payload
                    event = DocumentEvent(EventType.RASTER_UPDATED, name)
        finally:
            with self._lock:
                if self._generations.get(name) == generation:
                    self._timers.pop(name, None)

        if event is not None:
            self._notify(event)

    def wait_for_pending(self, timeout: float | None = None) -> None:
        """Block until scheduled re-encodes have finished."""

        with self._lock:
            timers = list(self._timers.values())
        for timer in timers:
            timer.join(timeout)

    def _cancel_timers(self, name: str | None = None) -> None:
        names = [name] if name is not None else list(self._timers)
        for key in names:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            # stale results from an in-flight encode are dropped
            self._generations[key] = self._generations.get(key, 0) + 1

    def remove(self, name: str) -> None:
        with self._lock:
            index = self._document.index_of(name)
            self._cancel_timers(name)
            del self._document.elements[index]
        self._notify(DocumentEvent(EventType.REMOVED, name))

    def clear(self) -> None:
        with self._lock:
            self._cancel_timers()
            self._document.elements.clear()
        self._notify(DocumentEvent(EventType.CLEARED))

    def replace_document(self, document: LabelDocument) -> None:
        with self._lock:
            self._cancel_timers()
            self._document = document
        self._notify(DocumentEvent(EventType.LOADED))

    # Output

    def generate_zpl(
        self,
        config: PrinterConfig,
        strategy: Strategy | str = Strategy.ELEMENTS,
        *,
        renderer: SceneRenderer | None = None,
    ) -> str:
        return generate_zpl(self.snapshot(), config, strategy, renderer=renderer)

    def save_async(self, path: str | Path) -> Future[None]:
        return self._executor.submit(
            project_serializer.save_to_file, path, self.snapshot()
        )

    def load_async(self, path: str | Path) -> Future[LabelDocument]:
        def load() -> LabelDocument:
            document = project_serializer.load_from_file(path)
            self.replace_document(document)
            return document

        return self._executor.submit(load)

    def print_async(
        self,
        client: PrinterClient,
        strategy: Strategy | str = Strategy.ELEMENTS,
        *,
        renderer: SceneRenderer | None = None,
    ) -> Future[str]:
        """Generate and send the label; the future yields the sent stream."""

        document = self.snapshot()

        def send() -> str:
            stream = generate_zpl(document, client.config, strategy, renderer=renderer)
            client.send(stream)
            return stream

        return self._executor.submit(send)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._cancel_timers()
        self._executor.shutdown(wait=True)


__all__ = [
    "DocumentEvent",
    "EventType",
    "LabelSession",
]
