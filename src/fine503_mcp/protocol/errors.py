"""Exception hierarchy for the FINE-503 protocol layer.

Validation errors are raised before anything is written to the wire,
decode errors after a reply line has been read, and transport errors
come straight from the serial gateway.
"""

from __future__ import annotations


class Fine503Error(Exception):
    """Base class for every error raised by this package."""


class InvalidAxis(Fine503Error, ValueError):
    """Axis value outside the FIRST/SECOND/THIRD/ALL enumeration."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid axis {value!r}. Valid: 1, 2, 3 or 'all'")


class ParameterArityMismatch(Fine503Error, ValueError):
    """Parameter array length does not match the selected axis."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected {expected} parameter(s) for the selected axis, got {actual}"
        )


class DecodeError(Fine503Error, ValueError):
    """A reply line could not be decoded."""

    def __init__(self, message: str, line: str = "") -> None:
        self.line = line
        super().__init__(message)


class MalformedStatusReply(DecodeError):
    """Status reply without six fields or with non-numeric positions."""


class MalformedArityReply(DecodeError):
    """Voltage/speed/control-mode reply with a bad token count or value."""


class EmptyReply(DecodeError):
    """Single-character reply that came back empty."""


class TransportError(Fine503Error, ConnectionError):
    """Failure in the serial transport."""


class TransportTimeout(TransportError, TimeoutError):
    """No complete reply line arrived within the timeout."""


class TransportIOError(TransportError):
    """The port could not be opened, written or read."""
