"""Raw TCP delivery of command streams to a network label printer."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

from label_config import DEFAULT_TIMEOUT, PrinterConfig
from label_errors import (
    PrinterUnreachableError,
    TransmissionFailedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Connect-only checks should not hold up a status page.
PROBE_TIMEOUT = 2.0


def send(
    host: str,
    port: int,
    command_stream: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Open a connection, write the whole stream once, close.

    The printer sends no acknowledgement, so nothing is read back.
    """

    if not command_stream:
        raise ValidationError("Refusing to send an empty command stream.")
    if not host:
        raise PrinterUnreachableError("No printer host configured.", host, port)

    payload = command_stream.encode("utf-8")
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as exc:
        raise PrinterUnreachableError(
            f"Cannot connect to printer {host}:{port}: {exc}", host, port
        ) from exc

    with sock:
        try:
            sock.sendall(payload)
        except OSError as exc:
            raise TransmissionFailedError(
                f"Sending to printer {host}:{port} failed: {exc}", host, port
            ) from exc

    logger.info("Sent %d bytes to printer %s:%s", len(payload), host, port)


def probe(host: str, port: int, timeout: float = PROBE_TIMEOUT) -> bool:
    """Return True when a TCP connection to the printer can be opened."""

    if not host:
        return False
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as exc:
        logger.info("Printer %s:%s is not reachable: %s", host, port, exc)
        return False


@dataclass(frozen=True)
class PrinterClient:
    """Transport bound to one configured printer."""

    config: PrinterConfig

    def send(self, command_stream: str) -> None:
        send(
            self.config.host,
            self.config.port,
            command_stream,
            timeout=self.config.timeout,
        )

    def probe(self) -> bool:
        return probe(
            self.config.host,
            self.config.port,
            timeout=min(self.config.timeout, PROBE_TIMEOUT),
        )


__all__ = [
    "PROBE_TIMEOUT",
    "PrinterClient",
    "probe",
    "send",
]
