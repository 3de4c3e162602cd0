"""Axis selection, parameter arity checks and sign characters.

The controller addresses either one of its three channels or all of
them at once (``W`` on the wire). Commands that carry per-axis values
need exactly one value per addressed channel.
"""

from __future__ import annotations

from collections.abc import Sized
from enum import IntEnum

from .errors import InvalidAxis, ParameterArityMismatch


class Axis(IntEnum):
    """Axis addressing modes."""

    FIRST = 1
    SECOND = 2
    THIRD = 3
    ALL = 4

    @classmethod
    def parse(cls, value: int | str | Axis) -> Axis:
        """Accept an Axis, its integer code, or text like ``"2"`` / ``"all"``."""
        return resolve_axis(value)


class ClosedLoopMode(IntEnum):
    """Position feedback mode set with the ``K:`` command."""

    TRACK = 0
    LOCK = 1


WIDE_CODE = "W"

_CARDINALITY: dict[Axis, int] = {
    Axis.FIRST: 1,
    Axis.SECOND: 1,
    Axis.THIRD: 1,
    Axis.ALL: 3,
}

# A new Axis member must get a cardinality entry.
assert set(_CARDINALITY) == set(Axis), "cardinality table is missing an axis"

_AXIS_ALIASES = {"all": Axis.ALL, "w": Axis.ALL}


def resolve_axis(value: int | str | Axis) -> Axis:
    """Return the Axis for ``value`` or raise InvalidAxis."""
    if isinstance(value, Axis):
        return value
    if isinstance(value, bool):
        raise InvalidAxis(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _AXIS_ALIASES:
            return _AXIS_ALIASES[text]
        if not (text.isascii() and text.isdecimal()):
            raise InvalidAxis(value)
        value = int(text)
    if not isinstance(value, int):
        raise InvalidAxis(value)
    try:
        return Axis(value)
    except ValueError:
        raise InvalidAxis(value) from None


def cardinality(axis: int | str | Axis) -> int:
    """Number of per-axis values a command addressed to ``axis`` carries."""
    return _CARDINALITY[resolve_axis(axis)]


def axis_code(axis: int | str | Axis) -> str:
    """Wire code for the axis: ``"1"``-``"3"`` or ``"W"`` for all axes."""
    axis = resolve_axis(axis)
    if axis is Axis.ALL:
        return WIDE_CODE
    return str(axis.value)


def check_parameters(axis: int | str | Axis, params: Sized) -> Axis:
    """Verify ``params`` has one entry per addressed axis.

    Returns:
        The resolved Axis.

    Raises:
        InvalidAxis: If ``axis`` is not a valid selection.
        ParameterArityMismatch: If the length does not match.
    """
    axis = resolve_axis(axis)
    expected = _CARDINALITY[axis]
    if len(params) != expected:
        raise ParameterArityMismatch(expected, len(params))
    return axis


def sign_of_int(value: int) -> str:
    """'+' for zero and positive values, '-' for negative ones."""
    return "+" if value >= 0 else "-"


def sign_of_bool(positive: bool) -> str:
    """'+' for a positive direction, '-' otherwise."""
    return "+" if positive else "-"
