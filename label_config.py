"""Printer and resolution settings passed explicitly through the pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Default raw-print port used by Zebra-compatible network printers.
DEFAULT_PORT = 9100
# Default timeout (in seconds) for connect and write on the printer socket.
DEFAULT_TIMEOUT = 5.0
DEFAULT_PRINTER_DPI = 304
DEFAULT_DESIGN_DPI = 96


@dataclass(frozen=True)
class PrinterConfig:
    """Where to print and at which resolution."""

    host: str = ""
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    printer_dpi: float = DEFAULT_PRINTER_DPI
    design_dpi: float = DEFAULT_DESIGN_DPI

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", (self.host or "").strip())
        if not 0 < self.port < 65536:
            raise RuntimeError(f"Printer port {self.port} is out of range.")
        if self.timeout <= 0:
            raise RuntimeError("Printer timeout must be positive.")
        if self.printer_dpi <= 0 or self.design_dpi <= 0:
            raise RuntimeError("Printer and design DPI must be positive.")

    @property
    def scale(self) -> float:
        """Design-to-printer scale factor as a true ratio."""

        return float(self.printer_dpi) / float(self.design_dpi)

    @classmethod
    def from_env(cls) -> PrinterConfig:
        """Build the configuration from ``LABEL_*`` environment variables."""

        try:
            return cls(
                host=os.getenv("LABEL_PRINTER_HOST", ""),
                port=int(os.getenv("LABEL_PRINTER_PORT", DEFAULT_PORT)),
                timeout=float(os.getenv("LABEL_PRINTER_TIMEOUT", DEFAULT_TIMEOUT)),
                printer_dpi=float(os.getenv("LABEL_PRINTER_DPI", DEFAULT_PRINTER_DPI)),
                design_dpi=float(os.getenv("LABEL_DESIGN_DPI", DEFAULT_DESIGN_DPI)),
            )
        except ValueError as exc:
            raise RuntimeError(f"Invalid printer configuration: {exc}") from exc


__all__ = [
    "DEFAULT_DESIGN_DPI",
    "DEFAULT_PORT",
    "DEFAULT_PRINTER_DPI",
    "DEFAULT_TIMEOUT",
    "PrinterConfig",
]
