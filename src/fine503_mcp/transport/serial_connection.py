"""RS-232 connection to the FINE-503 controller.

The controller speaks 8N1 with RTS/CTS handshaking. Commands and replies
are ASCII lines terminated by CR+LF, one reply per command, with no
request IDs, so requests must never overlap.
"""

from __future__ import annotations

import logging
import threading

import serial

from ..protocol.errors import TransportIOError, TransportTimeout

logger = logging.getLogger(__name__)

VALID_BAUD_RATES = (4800, 9600, 19200, 38400)
DEFAULT_BAUD_RATE = 38400
LINE_TERMINATOR = b"\r\n"
READ_TIMEOUT = 1.0
WRITE_TIMEOUT = 1.0
ENCODING = "ascii"


class SerialConnection:
    """Manages the serial line to the controller.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0", 38400)
        conn.open()
        reply = conn.send_and_receive("Q:")
        conn.close()

    It can also be used as a context manager, which opens on entry and
    always closes on exit.
    """

    def __init__(
        self,
        port: str,
        baud_rate: int = DEFAULT_BAUD_RATE,
        timeout: float = READ_TIMEOUT,
        echo: bool = False,
    ) -> None:
        if not port:
            raise ValueError("Port name must not be empty")
        if baud_rate not in VALID_BAUD_RATES:
            raise ValueError(
                f"Baud rate must be one of {list(VALID_BAUD_RATES)}, got {baud_rate}"
            )
        if timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {timeout}")

        self._port = port
        self._baud_rate = baud_rate
        self._timeout = timeout
        self._echo = echo
        self._serial: serial.Serial | None = None
        self._lock = threading.Lock()

    @property
    def port(self) -> str:
        return self._port

    @property
    def baud_rate(self) -> int:
        return self._baud_rate

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open the serial port.

        Raises:
            TransportIOError: If the port cannot be opened.
        """
        if self.connected:
            return

        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                rtscts=True,
                timeout=self._timeout,
                write_timeout=WRITE_TIMEOUT,
            )
        except (serial.SerialException, OSError) as e:
            raise TransportIOError(
                f"Could not open {self._port} at {self._baud_rate} baud: {e}"
            ) from e

        logger.info("Connected to %s at %d baud", self._port, self._baud_rate)

    def close(self) -> None:
        """Close the port. Safe to call more than once."""
        with self._lock:
            if self._serial is None:
                return
            try:
                self._serial.close()
            except (serial.SerialException, OSError) as e:
                logger.warning("Error closing %s: %s", self._port, e)
            finally:
                self._serial = None
                logger.info("Disconnected from %s", self._port)

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_serial(self) -> serial.Serial:
        if not self.connected:
            raise TransportIOError("Not connected to device")
        return self._serial

    def write_line(self, text: str) -> None:
        """Write one command line, appending CR+LF.

        Raises:
            ValueError: If ``text`` is not 7-bit ASCII.
            TransportTimeout: If the write does not complete in time.
            TransportIOError: If the port is closed or the write fails.
        """
        try:
            data = text.encode(ENCODING) + LINE_TERMINATOR
        except UnicodeEncodeError as e:
            raise ValueError(f"Command must be ASCII: {text!r}") from e

        port = self._require_serial()
        if self._echo:
            logger.info(">> %s", text)
        else:
            logger.debug(">> %s", text)

        try:
            port.write(data)
            port.flush()
        except serial.SerialTimeoutException as e:
            raise TransportTimeout(f"Write to {self._port} timed out") from e
        except (serial.SerialException, OSError) as e:
            raise TransportIOError(f"Write to {self._port} failed: {e}") from e

    def read_line(self, timeout: float | None = None) -> str:
        """Read one reply line and return it without the terminator.

        Args:
            timeout: Override of the connection's read timeout, in seconds.

        Raises:
            TransportTimeout: If no full line arrives within the timeout.
            TransportIOError: If the port is closed or the read fails.
        """
        port = self._require_serial()
        previous = port.timeout
        if timeout is not None:
            port.timeout = timeout

        try:
            data = port.read_until(LINE_TERMINATOR)
        except (serial.SerialException, OSError) as e:
            raise TransportIOError(f"Read from {self._port} failed: {e}") from e
        finally:
            if timeout is not None:
                port.timeout = previous

        if not data.endswith(LINE_TERMINATOR):
            raise TransportTimeout(
                f"No reply from {self._port} within "
                f"{timeout if timeout is not None else previous}s "
                f"(partial: {data!r})"
            )

        try:
            line = data[: -len(LINE_TERMINATOR)].decode(ENCODING)
        except UnicodeDecodeError as e:
            raise TransportIOError(
                f"Non-ASCII reply from {self._port}: {data!r}"
            ) from e

        if self._echo:
            logger.info("<< %s", line)
        else:
            logger.debug("<< %s", line)
        return line

    def send_and_receive(self, text: str, timeout: float | None = None) -> str:
        """Send a command line and read its reply.

        Only one request is in flight at a time; concurrent callers wait
        until the previous reply (or timeout) has been consumed.
        """
        with self._lock:
            self.write_line(text)
            return self.read_line(timeout)
