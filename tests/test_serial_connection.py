"""Tests for the serial transport, with pyserial mocked out."""

from __future__ import annotations

import logging
import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import serial

from fine503_mcp.protocol.errors import TransportIOError, TransportTimeout
from fine503_mcp.transport.serial_connection import (
    LINE_TERMINATOR,
    VALID_BAUD_RATES,
    SerialConnection,
)


def _open_connection(replies: list[bytes] | None = None, **kwargs):
    """Open a SerialConnection backed by a mock serial.Serial."""
    mock_port = MagicMock()
    mock_port.is_open = True
    mock_port.timeout = kwargs.get("timeout", 1.0)
    mock_port.read_until.side_effect = list(replies or [])

    with patch("serial.Serial", return_value=mock_port) as mock_cls:
        conn = SerialConnection("COM3", 38400, **kwargs)
        conn.open()
    return conn, mock_port, mock_cls


@pytest.mark.parametrize("baud", VALID_BAUD_RATES)
def test_valid_baud_rates(baud):
    conn = SerialConnection("COM3", baud)
    assert conn.baud_rate == baud


@pytest.mark.parametrize("baud", [0, 1200, 57600, 115200])
def test_invalid_baud_rate(baud):
    """Only the four controller rates are accepted."""
    with pytest.raises(ValueError):
        SerialConnection("COM3", baud)


def test_empty_port_name():
    with pytest.raises(ValueError):
        SerialConnection("", 9600)


def test_open_configures_port():
    """8N1 with RTS/CTS handshake."""
    conn, _, mock_cls = _open_connection()
    kwargs = mock_cls.call_args.kwargs
    assert kwargs["port"] == "COM3"
    assert kwargs["baudrate"] == 38400
    assert kwargs["bytesize"] == serial.EIGHTBITS
    assert kwargs["parity"] == serial.PARITY_NONE
    assert kwargs["stopbits"] == serial.STOPBITS_ONE
    assert kwargs["rtscts"] is True
    assert conn.connected


def test_open_failure():
    with patch("serial.Serial", side_effect=serial.SerialException("busy")):
        conn = SerialConnection("COM9", 9600)
        with pytest.raises(TransportIOError):
            conn.open()
    assert not conn.connected


def test_write_line_appends_terminator():
    conn, mock_port, _ = _open_connection()
    conn.write_line("Q:")
    mock_port.write.assert_called_once_with(b"Q:" + LINE_TERMINATOR)


def test_write_line_rejects_non_ascii():
    conn, mock_port, _ = _open_connection()
    with pytest.raises(ValueError):
        conn.write_line("A:1+P\u00b5")
    mock_port.write.assert_not_called()


def test_write_timeout():
    conn, mock_port, _ = _open_connection()
    mock_port.write.side_effect = serial.SerialTimeoutException("write")
    with pytest.raises(TransportTimeout):
        conn.write_line("G:")


def test_read_line_strips_terminator():
    conn, _, _ = _open_connection([b"OK\r\n"])
    assert conn.read_line() == "OK"


def test_read_line_timeout():
    """A reply without its terminator means the read timed out."""
    conn, _, _ = _open_connection([b"10S2"])
    with pytest.raises(TransportTimeout):
        conn.read_line()


def test_read_line_timeout_override_is_restored():
    conn, mock_port, _ = _open_connection([b"OK\r\n"], timeout=1.0)
    conn.read_line(timeout=5.0)
    assert mock_port.timeout == 1.0


def test_read_error():
    conn, mock_port, _ = _open_connection()
    mock_port.read_until.side_effect = serial.SerialException("unplugged")
    with pytest.raises(TransportIOError):
        conn.read_line()


def test_send_and_receive():
    conn, mock_port, _ = _open_connection([b"100,200,300,K,K,K\r\n"])
    assert conn.send_and_receive("Q:") == "100,200,300,K,K,K"
    mock_port.write.assert_called_once_with(b"Q:\r\n")


def test_write_when_closed():
    conn = SerialConnection("COM3", 9600)
    with pytest.raises(TransportIOError):
        conn.write_line("Q:")


def test_close_is_idempotent():
    conn, mock_port, _ = _open_connection()
    conn.close()
    conn.close()
    mock_port.close.assert_called_once()
    assert not conn.connected


def test_close_error_still_releases():
    conn, mock_port, _ = _open_connection()
    mock_port.close.side_effect = serial.SerialException("gone")
    conn.close()
    assert not conn.connected


def test_context_manager_closes():
    mock_port = MagicMock()
    mock_port.is_open = True
    with patch("serial.Serial", return_value=mock_port):
        with pytest.raises(RuntimeError):
            with SerialConnection("COM3", 19200) as conn:
                assert conn.connected
                raise RuntimeError("boom")
    mock_port.close.assert_called_once()


def test_read_line_rejects_non_ascii():
    """Bytes outside 7-bit ASCII are an error, never replaced."""
    conn, _, _ = _open_connection([b"FINE\xff503\r\n"])
    with pytest.raises(TransportIOError):
        conn.read_line()


def test_concurrent_close_releases_once():
    """Closers waiting on an in-flight request both return cleanly."""
    conn, mock_port, _ = _open_connection()
    errors: list[BaseException] = []

    def closer():
        try:
            conn.close()
        except BaseException as e:
            errors.append(e)

    with conn._lock:
        threads = [threading.Thread(target=closer) for _ in range(2)]
        for t in threads:
            t.start()
        time.sleep(0.05)
    for t in threads:
        t.join(timeout=2)

    assert errors == []
    mock_port.close.assert_called_once()
    assert not conn.connected


def test_second_request_waits_for_first_reply():
    """A second command is not written until the first reply is read."""
    conn, mock_port, _ = _open_connection()
    events: list[str] = []
    reads: list[int] = []
    first_read_started = threading.Event()
    release_first_reply = threading.Event()

    def write(data):
        events.append(f"write {data!r}")

    def read_until(terminator):
        reads.append(1)
        if len(reads) == 1:
            first_read_started.set()
            release_first_reply.wait(timeout=2)
        events.append("read")
        return b"OK\r\n"

    mock_port.write.side_effect = write
    mock_port.read_until.side_effect = read_until

    first = threading.Thread(target=conn.send_and_receive, args=("Q:",))
    second = threading.Thread(target=conn.send_and_receive, args=("!:",))
    first.start()
    assert first_read_started.wait(timeout=2)
    second.start()
    time.sleep(0.05)
    assert events == ["write b'Q:\\r\\n'"]

    release_first_reply.set()
    first.join(timeout=2)
    second.join(timeout=2)
    assert events == [
        "write b'Q:\\r\\n'",
        "read",
        "write b'!:\\r\\n'",
        "read",
    ]


def test_echo_logs_traffic_at_info(caplog):
    conn, _, _ = _open_connection([b"OK\r\n"], echo=True)
    with caplog.at_level(logging.INFO, logger="fine503_mcp.transport.serial_connection"):
        conn.send_and_receive("G:")

    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert ">> G:" in messages
    assert "<< OK" in messages


def test_without_echo_traffic_stays_at_debug(caplog):
    conn, _, _ = _open_connection([b"OK\r\n"])
    with caplog.at_level(logging.INFO, logger="fine503_mcp.transport.serial_connection"):
        conn.send_and_receive("G:")

    assert not [r for r in caplog.records if ">>" in r.getMessage()]
