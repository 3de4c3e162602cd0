"""Response parsing for device reply lines."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .axis import Axis, cardinality
from .errors import EmptyReply, MalformedArityReply, MalformedStatusReply

STATUS_FIELD_COUNT = 6
_VALID_ARITIES = (1, 3)
_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class StatusReply:
    """Parsed ``Q:`` reply: three positions and three state codes."""

    positions: tuple[int, int, int]
    states: tuple[str, str, str]

    def to_dict(self) -> dict:
        return {
            "positions": list(self.positions),
            "states": list(self.states),
        }


def _to_int(token: str) -> int:
    if not _DECIMAL.fullmatch(token):
        raise ValueError(f"not a decimal integer: {token!r}")
    return int(token)


def _strip_terminator(line: str) -> str:
    return line.rstrip("\r\n")


def parse_status(line: str) -> StatusReply:
    """Parse a status reply such as ``"100, 200, 300,K,K,R"``.

    Raises:
        MalformedStatusReply: If the reply does not hold six fields or a
            position is not a decimal integer.
    """
    fields = _strip_terminator(line).replace(" ", "").split(",")
    if len(fields) != STATUS_FIELD_COUNT:
        raise MalformedStatusReply(
            f"Status reply must have {STATUS_FIELD_COUNT} fields, got {len(fields)}",
            line,
        )

    try:
        positions = tuple(_to_int(f) for f in fields[:3])
    except ValueError as e:
        raise MalformedStatusReply(f"Bad position in status reply: {e}", line) from e

    if not all(fields[3:]):
        raise MalformedStatusReply("Empty state code in status reply", line)
    states = tuple(f[0] for f in fields[3:])

    return StatusReply(positions=positions, states=states)


def _parse_arity(tokens: list[str], line: str, axis: Axis | int | str | None) -> list[int]:
    tokens = [t for t in tokens if t]
    if axis is not None:
        expected = cardinality(axis)
        if len(tokens) != expected:
            raise MalformedArityReply(
                f"Expected {expected} value(s) for the requested axis, got {len(tokens)}",
                line,
            )
    elif len(tokens) not in _VALID_ARITIES:
        raise MalformedArityReply(
            f"Expected 1 or 3 values, got {len(tokens)}", line
        )

    try:
        return [_to_int(t) for t in tokens]
    except ValueError as e:
        raise MalformedArityReply(f"Non-numeric value in reply: {e}", line) from e


def parse_voltage(line: str, axis: Axis | int | str | None = None) -> list[int]:
    """Parse a ``V:`` reply (comma separated).

    Args:
        line: Reply line.
        axis: Axis the query addressed. When given, the value count must
            match it; otherwise 1 or 3 values are accepted.
    """
    tokens = _strip_terminator(line).replace(" ", "").split(",")
    return _parse_arity(tokens, line, axis)


def parse_control_mode(line: str, axis: Axis | int | str | None = None) -> list[int]:
    """Parse a ``?:C`` reply (comma separated)."""
    tokens = _strip_terminator(line).replace(" ", "").split(",")
    return _parse_arity(tokens, line, axis)


def parse_speed(line: str, axis: Axis | int | str | None = None) -> list[int]:
    """Parse a ``?:D`` reply, where every value is terminated by ``S``.

    ``"10S20S30S"`` yields ``[10, 20, 30]``.
    """
    tokens = _strip_terminator(line).replace(" ", "").split("S")
    return _parse_arity(tokens, line, axis)


def parse_ack_status(line: str) -> str:
    """Return the single-character ready code of a ``!:`` reply."""
    text = _strip_terminator(line)
    if not text:
        raise EmptyReply("Empty ACK status reply", line)
    return text[0]


def parse_text(line: str) -> str:
    """Return a free-text reply (model name, version, OK/NG) as sent."""
    return _strip_terminator(line)
