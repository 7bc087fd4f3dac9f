import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

from label_designer import main
from label_types import ElementKind, LabelDocument, LabelElement
from project_serializer import save_to_file

SAME_DPI = ["--printer-dpi", "96", "--design-dpi", "96"]


def _write_project(directory: str) -> Path:
    path = Path(directory) / "label.json"
    save_to_file(
        path,
        LabelDocument(
            name="Shelf",
            width=60,
            height=40,
            elements=[
                LabelElement(
                    name="Text_1",
                    kind=ElementKind.TEXT,
                    x=5,
                    y=5,
                    width=50,
                    height=20,
                    content="Edit Me",
                    font_size=16,
                )
            ],
        ),
    )
    return path


class LabelDesignerCliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name
        self.project = _write_project(self.tmp)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_prints_stream_to_stdout(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            code = main([str(self.project), *SAME_DPI])
        self.assertEqual(code, 0)
        self.assertIn("^PW60\n^LL40\n", out.getvalue())
        self.assertIn("^FO5,5^A0N,16,", out.getvalue())

    def test_writes_output_file(self) -> None:
        target = Path(self.tmp) / "label.zpl"
        out = io.StringIO()
        with redirect_stdout(out):
            main([str(self.project), "-o", str(target), *SAME_DPI])
        self.assertTrue(target.read_text(encoding="utf-8").startswith("^XA"))
        self.assertIn(str(target), out.getvalue())

    def test_missing_project(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            main([str(Path(self.tmp) / "missing.json")])
        self.assertIn("Cannot open project", str(ctx.exception))

    def test_malformed_project(self) -> None:
        bad = Path(self.tmp) / "bad.json"
        bad.write_text("{", encoding="utf-8")
        with self.assertRaises(SystemExit) as ctx:
            main([str(bad)])
        self.assertIn("malformed", str(ctx.exception))

    def test_invalid_dpi(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            main([str(self.project), "--printer-dpi", "0"])
        self.assertIn("Invalid printer settings", str(ctx.exception))

    @patch("printer_transport.socket.create_connection")
    def test_print_sends_stream(self, mock_connect: Mock) -> None:
        sock = MagicMock()
        mock_connect.return_value = sock
        out = io.StringIO()
        with redirect_stdout(out):
            main([str(self.project), "--print", "--host", "printer", "--port", "6101", *SAME_DPI])
        mock_connect.assert_called_once()
        self.assertEqual(mock_connect.call_args.args[0], ("printer", 6101))
        self.assertTrue(sock.sendall.call_args.args[0].startswith(b"^XA"))
        self.assertIn("Sent 'Shelf' to printer:6101", out.getvalue())

    @patch("printer_transport.socket.create_connection")
    def test_print_unreachable(self, mock_connect: Mock) -> None:
        mock_connect.side_effect = ConnectionRefusedError("refused")
        with self.assertRaises(SystemExit) as ctx:
            main([str(self.project), "--print", "--host", "printer"])
        self.assertIn("Printer unreachable", str(ctx.exception))

    @patch("printer_transport.socket.create_connection")
    def test_print_transmission_failed(self, mock_connect: Mock) -> None:
        sock = MagicMock()
        sock.sendall.side_effect = ConnectionResetError("reset")
        mock_connect.return_value = sock
        with self.assertRaises(SystemExit) as ctx:
            main([str(self.project), "--print", "--host", "printer"])
        self.assertIn("transmission", str(ctx.exception))

    @patch("label_designer.PrinterClient.probe", return_value=False)
    def test_probe_unreachable(self, mock_probe: Mock) -> None:
        with self.assertRaises(SystemExit) as ctx:
            main(["--probe", "--host", "printer"])
        self.assertIn("unreachable", str(ctx.exception))
        mock_probe.assert_called_once()

    @patch("label_designer.PrinterClient.probe", return_value=True)
    def test_probe_reachable(self, mock_probe: Mock) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["--probe", "--host", "printer"]), 0)
        self.assertIn("reachable", out.getvalue())


if __name__ == "__main__":
    unittest.main()
