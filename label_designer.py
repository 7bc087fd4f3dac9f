#!/usr/bin/env python3
"""Turn a saved label project into printer commands and optionally print it."""

import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from label_config import DEFAULT_PORT, PrinterConfig
from label_errors import (
    EncodingError,
    MalformedProjectError,
    PrinterUnreachableError,
    ProjectIoError,
    TransmissionFailedError,
)
from printer_transport import PrinterClient
from project_serializer import load_from_file
from zpl_generation import Strategy, generate_zpl

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _build_config(args: argparse.Namespace) -> PrinterConfig:
    """Command-line values win over ``LABEL_*`` environment settings."""

    try:
        env = PrinterConfig.from_env()
        return PrinterConfig(
            host=args.host if args.host is not None else env.host,
            port=args.port if args.port is not None else env.port,
            timeout=args.timeout if args.timeout is not None else env.timeout,
            printer_dpi=(
                args.printer_dpi if args.printer_dpi is not None else env.printer_dpi
            ),
            design_dpi=(
                args.design_dpi if args.design_dpi is not None else env.design_dpi
            ),
        )
    except RuntimeError as exc:
        raise SystemExit(f"Invalid printer settings: {exc}") from exc


def _write_output(path: str, stream: str) -> str:
    try:
        Path(path).write_text(stream, encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Cannot write '{path}': {exc}") from exc
    return f"Wrote label commands to {path}"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for generating and printing a label project."""

    parser = argparse.ArgumentParser(
        description="Label project (JSON) -> ZPL, optionally sent to a network printer"
    )
    parser.add_argument("project", nargs="?", help="Path to a saved label project")
    parser.add_argument(
        "-o", "--output",
        help="Write the command stream to this file instead of stdout.",
    )
    parser.add_argument(
        "-s", "--strategy",
        choices=[strategy.value for strategy in Strategy],
        default=Strategy.ELEMENTS.value,
        help=(
            "'elements' emits one command per element, 'canvas' rasterizes "
            "the whole label (default: elements)."
        ),
    )
    parser.add_argument(
        "-p", "--print",
        dest="send",
        action="store_true",
        help="Send the generated commands to the printer.",
    )
    parser.add_argument(
        "--probe",
        action="store_true",
        help="Only check that the printer accepts connections.",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Printer host (defaults to LABEL_PRINTER_HOST from the environment/.env).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=(
            "Printer port (defaults to LABEL_PRINTER_PORT from the "
            f"environment/.env, else {DEFAULT_PORT})."
        ),
    )
    parser.add_argument("--timeout", type=float, default=None)
    parser.add_argument("--printer-dpi", type=float, default=None)
    parser.add_argument("--design-dpi", type=float, default=None)
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress to stderr.",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    config = _build_config(args)

    if args.probe:
        client = PrinterClient(config)
        if not client.probe():
            raise SystemExit(f"Printer {config.host or '?'}:{config.port} is unreachable.")
        print(f"Printer {config.host}:{config.port} is reachable.")
        return 0

    if not args.project:
        parser.error("a project file is required unless --probe is given")

    try:
        document = load_from_file(args.project)
    except MalformedProjectError as exc:
        raise SystemExit(f"Project file is malformed: {exc}") from exc
    except ProjectIoError as exc:
        raise SystemExit(f"Cannot open project: {exc}") from exc

    try:
        stream = generate_zpl(document, config, args.strategy)
    except EncodingError as exc:
        raise SystemExit(f"Cannot build label commands: {exc}") from exc

    if args.output:
        print(_write_output(args.output, stream))
    elif not args.send:
        print(stream, end="")

    if args.send:
        try:
            PrinterClient(config).send(stream)
        except PrinterUnreachableError as exc:
            raise SystemExit(f"Printer unreachable: {exc}") from exc
        except TransmissionFailedError as exc:
            raise SystemExit(f"Printing failed during transmission: {exc}") from exc
        label_name = document.name or os.path.basename(args.project)
        print(f"Sent '{label_name}' to {config.host}:{config.port}")

    return 0


if __name__ == "__main__":

    load_dotenv()

    main()
