"""HTTP API for generating, previewing and printing label projects."""

from __future__ import annotations

import argparse
import logging
import os

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request

import symbologies
from label_config import PrinterConfig
from label_errors import (
    EncodingError,
    LabelError,
    MalformedProjectError,
    PrinterUnreachableError,
    ProjectIoError,
    TransmissionFailedError,
    ValidationError,
)
from printer_transport import PrinterClient
from project_serializer import load
from zpl_generation import Strategy, generate_zpl

__all__ = ["run_web_app", "create_app", "create_app_from_env"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# HTTP status and error code per failure class; first match wins.
_ERROR_RESPONSES: list[tuple[type[LabelError], int, str]] = [
    (PrinterUnreachableError, 502, "unreachable"),
    (TransmissionFailedError, 502, "transmission_failed"),
    (MalformedProjectError, 400, "malformed"),
    (ProjectIoError, 500, "io_failure"),
    (EncodingError, 400, "validation"),
]


def _error_response(exc: LabelError) -> tuple[Response, int]:
    for error_cls, status, code in _ERROR_RESPONSES:
        if isinstance(exc, error_cls):
            return jsonify({"error": code, "message": str(exc)}), status
    return jsonify({"error": "label_error", "message": str(exc)}), 500


def _optional_float(name: str) -> float | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(f"Query parameter '{name}' must be a number.") from exc


def _strategy_arg() -> Strategy:
    raw = request.args.get("strategy", Strategy.ELEMENTS.value)
    try:
        return Strategy(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown strategy '{raw}'.") from exc


def create_app(config: PrinterConfig) -> Flask:
    """Create the Flask app bound to one printer configuration."""
    app = Flask(__name__)
    client = PrinterClient(config)

    @app.errorhandler(LabelError)
    def label_error(exc: LabelError):  # pyright: ignore[reportUnusedFunction]
        logger.warning("Request failed: %s", exc)
        return _error_response(exc)

    @app.route("/printer/status", methods=["GET"])
    def printer_status() -> Response:  # pyright: ignore[reportUnusedFunction]
        return jsonify(
            {
                "host": config.host,
                "port": config.port,
                "printer_dpi": config.printer_dpi,
                "design_dpi": config.design_dpi,
                "reachable": client.probe(),
            }
        )

    @app.route("/symbologies", methods=["GET"])
    def symbology_list() -> Response:  # pyright: ignore[reportUnusedFunction]
        return jsonify(list(symbologies.list_symbologies()))

    @app.route("/symbology/<kind>", methods=["POST"])
    def symbology_preview(kind: str) -> Response:  # pyright: ignore[reportUnusedFunction]
        payload = request.get_data(as_text=True)
        png = symbologies.encode_png(
            kind,
            payload,
            _optional_float("width"),
            _optional_float("height"),
        )
        return Response(png, mimetype="image/png")

    @app.route("/zpl", methods=["POST"])
    def zpl_generate() -> Response:  # pyright: ignore[reportUnusedFunction]
        document = load(request.get_data())
        stream = generate_zpl(document, config, _strategy_arg())
        return Response(stream, mimetype="text/plain")

    @app.route("/print", methods=["POST"])
    def print_label() -> Response:  # pyright: ignore[reportUnusedFunction]
        document = load(request.get_data())
        stream = generate_zpl(document, config, _strategy_arg())
        client.send(stream)
        return jsonify(
            {
                "status": "sent",
                "label": document.name,
                "bytes": len(stream.encode("utf-8")),
            }
        )

    return app


def create_app_from_env() -> Flask:
    """Create the Flask app using LABEL_* environment variables."""
    load_dotenv()
    return create_app(PrinterConfig.from_env())


def run_web_app(
    config: PrinterConfig,
    host: str,
    port: int,
) -> None:
    """Serve the label API with the Flask development server."""
    app = create_app(config)

    use_reloader_env = os.getenv("USE_RELOADER")
    use_reloader = (
        str(use_reloader_env).lower() in {"1", "true", "yes", "on"}
        if use_reloader_env is not None
        else False
    )
    app.run(host=host, port=port, debug=False, use_reloader=use_reloader)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the web API."""
    parser = argparse.ArgumentParser(
        description="Label designer HTTP API"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host/IP for the web API (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=4000,
        help="Port for the web API (default: 4000).",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    try:
        config = PrinterConfig.from_env()
    except RuntimeError as exc:
        raise SystemExit(f"Invalid printer settings: {exc}") from exc

    run_web_app(
        config=config,
        host=args.host,
        port=args.port,
    )
    return 0


if __name__ == "__main__":
    load_dotenv()
    main()
