"""Exception hierarchy shared by the label pipeline."""

from __future__ import annotations

__all__ = [
    "LabelError",
    "EncodingError",
    "ValidationError",
    "TransportError",
    "PrinterUnreachableError",
    "TransmissionFailedError",
    "SerializationError",
    "MalformedProjectError",
    "ProjectIoError",
]


class LabelError(Exception):
    """Base class for every error raised by the label pipeline."""


class EncodingError(LabelError):
    """A barcode payload could not be turned into a raster."""


class ValidationError(EncodingError):
    """Bad payload or dimensions, rejected before any encoding happens."""


class TransportError(LabelError):
    """Delivering a command stream to the printer failed."""

    def __init__(self, message: str, host: str = "", port: int = 0) -> None:
        super().__init__(message)
        self.host = host
        self.port = port


class PrinterUnreachableError(TransportError):
    """The connection to the printer could not be opened."""


class TransmissionFailedError(TransportError):
    """The connection opened but writing the stream failed."""


class SerializationError(LabelError):
    """A project file could not be written or read."""


class MalformedProjectError(SerializationError):
    """The project JSON is unparseable or has the wrong shape."""


class ProjectIoError(SerializationError):
    """The project file could not be accessed (missing, permissions, ...)."""
