import re
import unittest
from io import BytesIO
from typing import Sequence

from PIL import Image

import symbologies
from label_config import PrinterConfig
from label_errors import EncodingError, ValidationError
from label_types import ElementKind, LabelDocument, LabelElement
from scale_transform import scale_document
from scene_rendering import ReportLabSceneRenderer
from zpl_generation import (
    Strategy,
    build_element_commands,
    generate_zpl,
    prepare_rasters,
    resource_name,
)

DOWNLOAD_NAME = re.compile(r"^~DGR:([A-Z0-9]+)\.GRF,", re.MULTILINE)
DOWNLOAD_DATA = re.compile(r"^~DGR:[A-Z0-9]+\.GRF,\d+,\d+,([0-9A-F]+)", re.MULTILINE)
SAME_DPI = PrinterConfig(printer_dpi=96, design_dpi=96)


def _png(width: int, height: int, color: int = 0) -> bytes:
    buffer = BytesIO()
    Image.new("L", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _text() -> LabelElement:
    return LabelElement(
        name="Text_1",
        kind=ElementKind.TEXT,
        x=50,
        y=50,
        width=120,
        height=30,
        content="Edit Me",
        font_size=16,
    )


def _image(name: str, payload: bytes | None = None) -> LabelElement:
    return LabelElement(
        name=name,
        kind=ElementKind.IMAGE,
        x=5,
        y=5,
        width=16,
        height=8,
        binary_payload=payload if payload is not None else _png(16, 8),
        original_width=16,
        original_height=8,
    )


def _qr(name: str, content: str = "hello", size: float = 120) -> LabelElement:
    return LabelElement(
        name=name,
        kind=ElementKind.QR_CODE,
        x=0,
        y=0,
        width=size,
        height=size,
        content=content,
        binary_payload=symbologies.encode_png(ElementKind.QR_CODE, content, 120, 120),
        original_width=120,
        original_height=120,
    )


class _RecordingRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[list[LabelElement], int, int, float]] = []

    def render(
        self,
        elements: Sequence[LabelElement],
        pixel_width: int,
        pixel_height: int,
        dpi: float,
    ) -> bytes:
        self.calls.append((list(elements), pixel_width, pixel_height, dpi))
        return _png(pixel_width, pixel_height, 255)


class ResourceNameTests(unittest.TestCase):
    def test_letters_and_index(self) -> None:
        self.assertEqual(resource_name("logo", 12), "LOGO012")
        self.assertEqual(resource_name("QrCode_1", 0), "QRCOD000")

    def test_fallback_prefix(self) -> None:
        self.assertEqual(resource_name("123", 1), "IMG001")

    def test_never_longer_than_eight(self) -> None:
        for index in (0, 99, 1000, 123456):
            with self.subTest(index=index):
                self.assertLessEqual(len(resource_name("averylongname", index)), 8)

    def test_same_name_different_index(self) -> None:
        self.assertNotEqual(resource_name("logo", 1), resource_name("logo", 2))


class ElementStrategyTests(unittest.TestCase):
    def test_edit_me_text_field(self) -> None:
        document = LabelDocument(width=100, height=100, elements=[_text()])
        stream = generate_zpl(document, PrinterConfig(printer_dpi=304, design_dpi=96))
        self.assertIn("^PW317\n^LL317\n", stream)
        self.assertIn("^FX render-options target_dpi=304 source_dpi=96", stream)
        self.assertIn("^FO158,158^A0N,51,28^FDEdit Me^FS", stream)
        self.assertTrue(stream.startswith("^XA\n"))
        self.assertTrue(stream.endswith("^XZ\n"))

    def test_deterministic(self) -> None:
        document = LabelDocument(elements=[_text(), _image("logo"), _qr("QR_2")])
        self.assertEqual(
            generate_zpl(document, SAME_DPI), generate_zpl(document.copy(), SAME_DPI)
        )

    def test_unique_resource_names(self) -> None:
        document = LabelDocument(
            elements=[_image("logo"), _image("logo2"), _qr("QR_3"), _qr("QR_4")]
        )
        names = DOWNLOAD_NAME.findall(generate_zpl(document, SAME_DPI))
        self.assertEqual(len(names), 4)
        self.assertEqual(len(set(names)), 4)

    def test_same_named_elements_keep_their_own_rasters(self) -> None:
        document = LabelDocument(
            elements=[_image("IMG1", _png(16, 8, 0)), _image("IMG1", _png(16, 8, 255))]
        )
        stream = generate_zpl(document, SAME_DPI)
        self.assertEqual(DOWNLOAD_NAME.findall(stream), ["IMG000", "IMG001"])
        self.assertEqual(DOWNLOAD_DATA.findall(stream), ["FF" * 16, "00" * 16])

    def test_same_named_barcodes_encode_their_own_content(self) -> None:
        document = LabelDocument(
            elements=[_qr("QRCode", "first"), _qr("QRCode", "second-different")]
        )
        first, second = DOWNLOAD_DATA.findall(generate_zpl(document, SAME_DPI))
        self.assertNotEqual(first, second)

    def test_recall_follows_download_name(self) -> None:
        document = LabelDocument(elements=[_image("logo")])
        stream = generate_zpl(document, SAME_DPI)
        self.assertIn("~DGR:LOGO000.GRF,16,2,", stream)
        self.assertIn("^FO5,5^XGR:LOGO000.GRF,1,1^FS", stream)
        self.assertLess(stream.index("~DGR:"), stream.index("^XA"))

    def test_raster_resized_to_printer_pixels(self) -> None:
        document = LabelDocument(elements=[_image("logo")])
        stream = generate_zpl(document, PrinterConfig(printer_dpi=192, design_dpi=96))
        # 32x16 px after scaling: 4 bytes per row, 16 rows
        self.assertIn("~DGR:LOGO000.GRF,64,4,", stream)
        self.assertIn("^FO10,10^XG", stream)

    def test_element_without_raster_is_skipped(self) -> None:
        bare = LabelElement(name="empty", kind=ElementKind.IMAGE, width=10, height=10)
        document = LabelDocument(elements=[bare, _text()])
        with self.assertLogs("zpl_generation", level="WARNING"):
            stream = generate_zpl(document, SAME_DPI)
        self.assertNotIn("~DG", stream)
        self.assertIn("^FDEdit Me^FS", stream)

    def test_unreadable_raster_is_skipped(self) -> None:
        document = LabelDocument(elements=[_image("bad", b"garbage"), _image("logo")])
        with self.assertLogs("zpl_generation", level="WARNING"):
            stream = generate_zpl(document, SAME_DPI)
        self.assertEqual(DOWNLOAD_NAME.findall(stream), ["LOGO001"])

    def test_z_order_preserved(self) -> None:
        document = LabelDocument(elements=[_image("back"), _text()])
        stream = generate_zpl(document, SAME_DPI)
        self.assertLess(stream.index("^XGR:BACK000"), stream.index("^FDEdit Me"))

    def test_rotated_text(self) -> None:
        text = _text()
        text.rotation = 90
        stream = generate_zpl(LabelDocument(elements=[text]), SAME_DPI)
        self.assertIn("^A0R,16,", stream)

    def test_explicit_rasters_override(self) -> None:
        scaled = scale_document(LabelDocument(elements=[_image("logo")]), 1.0)
        commands = build_element_commands(scaled, {0: _png(16, 8, 255)}, font_name="Helvetica")
        self.assertEqual(commands[0].graphic.hex_data, "00" * 16)

    def test_unknown_strategy(self) -> None:
        with self.assertRaises(EncodingError):
            generate_zpl(LabelDocument(), SAME_DPI, "vector")


class PrepareRastersTests(unittest.TestCase):
    def test_barcodes_reencoded_at_printer_size(self) -> None:
        scaled = scale_document(LabelDocument(elements=[_qr("QR_1")]), 2.0)
        rasters = prepare_rasters(scaled)
        with Image.open(BytesIO(rasters[0])) as image:
            self.assertEqual(image.size, (240, 240))

    def test_failed_reencode_keeps_last_raster(self) -> None:
        element = _qr("QR_1", size=10)
        scaled = scale_document(LabelDocument(elements=[element]), 1.0)
        with self.assertLogs("zpl_generation", level="WARNING"):
            rasters = prepare_rasters(scaled)
        self.assertEqual(rasters[0], element.binary_payload)

    def test_rasters_keyed_by_position(self) -> None:
        scaled = scale_document(
            LabelDocument(elements=[_text(), _qr("QR", "one"), _qr("QR", "two")]), 1.0
        )
        rasters = prepare_rasters(scaled)
        self.assertEqual(sorted(rasters), [1, 2])
        self.assertNotEqual(rasters[1], rasters[2])

    def test_text_has_no_raster(self) -> None:
        scaled = scale_document(LabelDocument(elements=[_text()]), 1.0)
        self.assertEqual(prepare_rasters(scaled), {})


class CanvasStrategyTests(unittest.TestCase):
    def test_single_resource_at_origin(self) -> None:
        renderer = _RecordingRenderer()
        document = LabelDocument(width=100, height=50, elements=[_text(), _qr("QR_2")])
        stream = generate_zpl(
            document,
            PrinterConfig(printer_dpi=192, design_dpi=96),
            Strategy.CANVAS,
            renderer=renderer,
        )
        self.assertEqual(DOWNLOAD_NAME.findall(stream), ["LABEL"])
        self.assertIn("^FO0,0^XGR:LABEL.GRF,1,1^FS", stream)
        self.assertIn("~DGR:LABEL.GRF,2500,25,", stream)

        elements, width, height, dpi = renderer.calls[0]
        self.assertEqual((width, height, dpi), (200, 100, 192))
        self.assertEqual(elements[0].font_size, 32)
        with Image.open(BytesIO(elements[1].binary_payload)) as qr:
            self.assertEqual(qr.size, (240, 240))

    def test_canvas_gets_each_elements_own_raster(self) -> None:
        renderer = _RecordingRenderer()
        black, white = _png(16, 8, 0), _png(16, 8, 255)
        document = LabelDocument(elements=[_image("IMG1", black), _image("IMG1", white)])
        generate_zpl(document, SAME_DPI, Strategy.CANVAS, renderer=renderer)
        elements = renderer.calls[0][0]
        self.assertEqual([e.binary_payload for e in elements], [black, white])

    def test_strategy_from_string(self) -> None:
        renderer = _RecordingRenderer()
        generate_zpl(LabelDocument(), SAME_DPI, "canvas", renderer=renderer)
        self.assertEqual(len(renderer.calls), 1)


class ReportLabSceneRendererTests(unittest.TestCase):
    def test_renders_png_of_canvas_size(self) -> None:
        renderer = ReportLabSceneRenderer("Helvetica")
        scaled = scale_document(
            LabelDocument(width=100, height=60, elements=[_text(), _qr("QR_2", size=40)]),
            2.0,
        )
        png = renderer.render(scaled.document.elements, 200, 120, 192)
        with Image.open(BytesIO(png)) as image:
            self.assertAlmostEqual(image.width, 200, delta=1)
            self.assertAlmostEqual(image.height, 120, delta=1)
            self.assertLess(image.convert("L").getextrema()[0], 128)

    def test_invalid_canvas(self) -> None:
        renderer = ReportLabSceneRenderer("Helvetica")
        with self.assertRaises(ValidationError):
            renderer.render([], 0, 10, 96)
        with self.assertRaises(ValidationError):
            renderer.render([], 10, 10, 0)

    def test_canvas_strategy_with_default_renderer(self) -> None:
        document = LabelDocument(width=50, height=20, elements=[_text()])
        stream = generate_zpl(document, SAME_DPI, Strategy.CANVAS)
        self.assertEqual(DOWNLOAD_NAME.findall(stream), ["LABEL"])


if __name__ == "__main__":
    unittest.main()
