import unittest
from unittest.mock import MagicMock, Mock, patch

from label_config import PrinterConfig
from label_errors import (
    PrinterUnreachableError,
    TransmissionFailedError,
    TransportError,
    ValidationError,
)
from printer_transport import PrinterClient, probe, send


class SendTests(unittest.TestCase):
    @patch("printer_transport.socket.create_connection")
    def test_sends_stream_once_and_closes(self, mock_connect: Mock) -> None:
        sock = MagicMock()
        mock_connect.return_value = sock

        send("zebra.local", 9100, "^XA^XZ")

        mock_connect.assert_called_once_with(("zebra.local", 9100), timeout=5.0)
        sock.sendall.assert_called_once_with(b"^XA^XZ")
        sock.recv.assert_not_called()
        self.assertTrue(sock.__exit__.called)

    @patch("printer_transport.socket.create_connection")
    def test_utf8_payload(self, mock_connect: Mock) -> None:
        sock = MagicMock()
        mock_connect.return_value = sock
        send("zebra.local", 9100, "^FDПривет^FS")
        sock.sendall.assert_called_once_with("^FDПривет^FS".encode("utf-8"))

    @patch("printer_transport.socket.create_connection")
    def test_connect_failure_is_unreachable(self, mock_connect: Mock) -> None:
        cause = ConnectionRefusedError("refused")
        mock_connect.side_effect = cause

        with self.assertRaises(PrinterUnreachableError) as ctx:
            send("zebra.local", 9100, "^XA^XZ", timeout=1.5)

        self.assertIs(ctx.exception.__cause__, cause)
        self.assertEqual(ctx.exception.host, "zebra.local")
        self.assertEqual(ctx.exception.port, 9100)
        mock_connect.assert_called_once_with(("zebra.local", 9100), timeout=1.5)

    @patch("printer_transport.socket.create_connection")
    def test_timeout_is_unreachable(self, mock_connect: Mock) -> None:
        mock_connect.side_effect = TimeoutError("timed out")
        with self.assertRaises(PrinterUnreachableError):
            send("10.0.0.9", 9100, "^XA^XZ")

    @patch("printer_transport.socket.create_connection")
    def test_write_failure_is_transmission_failed(self, mock_connect: Mock) -> None:
        sock = MagicMock()
        cause = BrokenPipeError("pipe")
        sock.sendall.side_effect = cause
        mock_connect.return_value = sock

        with self.assertRaises(TransmissionFailedError) as ctx:
            send("zebra.local", 9100, "^XA^XZ")

        self.assertIs(ctx.exception.__cause__, cause)
        self.assertIsInstance(ctx.exception, TransportError)
        self.assertTrue(sock.__exit__.called)

    @patch("printer_transport.socket.create_connection")
    def test_empty_stream_rejected(self, mock_connect: Mock) -> None:
        with self.assertRaises(ValidationError):
            send("zebra.local", 9100, "")
        mock_connect.assert_not_called()

    @patch("printer_transport.socket.create_connection")
    def test_missing_host_is_unreachable(self, mock_connect: Mock) -> None:
        with self.assertRaises(PrinterUnreachableError):
            send("", 9100, "^XA^XZ")
        mock_connect.assert_not_called()

    @patch("printer_transport.socket.create_connection")
    def test_no_retry(self, mock_connect: Mock) -> None:
        mock_connect.side_effect = OSError("down")
        with self.assertRaises(PrinterUnreachableError):
            send("zebra.local", 9100, "^XA^XZ")
        self.assertEqual(mock_connect.call_count, 1)


class ProbeTests(unittest.TestCase):
    @patch("printer_transport.socket.create_connection")
    def test_reachable(self, mock_connect: Mock) -> None:
        mock_connect.return_value = MagicMock()
        self.assertTrue(probe("zebra.local", 9100))
        mock_connect.assert_called_once_with(("zebra.local", 9100), timeout=2.0)

    @patch("printer_transport.socket.create_connection")
    def test_unreachable(self, mock_connect: Mock) -> None:
        mock_connect.side_effect = OSError("no route")
        self.assertFalse(probe("zebra.local", 9100))

    def test_no_host(self) -> None:
        self.assertFalse(probe("", 9100))


class PrinterClientTests(unittest.TestCase):
    @patch("printer_transport.socket.create_connection")
    def test_uses_config(self, mock_connect: Mock) -> None:
        sock = MagicMock()
        mock_connect.return_value = sock
        client = PrinterClient(PrinterConfig(host="printer", port=6101, timeout=3.0))

        client.send("^XA^XZ")

        mock_connect.assert_called_once_with(("printer", 6101), timeout=3.0)
        sock.sendall.assert_called_once_with(b"^XA^XZ")

    @patch("printer_transport.socket.create_connection")
    def test_probe_caps_timeout(self, mock_connect: Mock) -> None:
        mock_connect.return_value = MagicMock()
        client = PrinterClient(PrinterConfig(host="printer", timeout=10.0))
        self.assertTrue(client.probe())
        mock_connect.assert_called_once_with(("printer", 9100), timeout=2.0)


if __name__ == "__main__":
    unittest.main()
