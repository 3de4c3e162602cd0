"""Command prefixes and ASCII command builders.

Every command is a single ASCII line of the form ``<letter>:<body>``.
Commands addressed to one axis embed its code (1-3); commands addressed
to all axes use ``W`` followed by one group per axis, in axis order.
Builders only return strings; the transport appends CR+LF.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from .axis import (
    Axis,
    ClosedLoopMode,
    axis_code,
    check_parameters,
    sign_of_bool,
    sign_of_int,
)


class Command(str, Enum):
    """Command prefixes."""

    MOVE_ABSOLUTE = "A:"
    MOVE_RELATIVE = "M:"
    MOVE_CONTINUOUS = "J:"
    DRIVE = "G:"
    MECHANICAL_ORIGIN = "H:"
    LOGICAL_ORIGIN = "N:"
    STOP = "L:"
    CLEAR_COORDINATE = "R:"
    STEP_AMOUNT = "D:"
    HYSTERESIS = "@:"
    CLOSED_LOOP_MODE = "K:"
    STATUS = "Q:"
    VOLTAGE = "V:"
    ACK_STATUS = "!:"
    INTERNAL_INFO = "?:"


EMERGENCY_STOP_CODE = "E"
MODEL_NAME_CODE = "N"
VERSION_CODE = "V"
SPEED_CODE = "D"
CONTROL_MODE_CODE = "C"


def _check_pulse_counts(values: Sequence[int]) -> None:
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Pulse counts must be integers, got {value!r}")


def _pulse_groups(movement: Sequence[int]) -> str:
    return "".join(f"{sign_of_int(step)}P{abs(step)}" for step in movement)


def _build_move(command: Command, axis: Axis | int | str, movement: Sequence[int]) -> str:
    axis = check_parameters(axis, movement)
    _check_pulse_counts(movement)
    return f"{command.value}{axis_code(axis)}{_pulse_groups(movement)}"


def _build_axis_only(command: Command, axis: Axis | int | str) -> str:
    return f"{command.value}{axis_code(axis)}"


def build_move_absolute(axis: Axis | int | str, movement: Sequence[int]) -> str:
    """Build an absolute move (``A:``). The move is armed, not executed.

    Args:
        axis: Target axis or ``Axis.ALL``.
        movement: One signed pulse count per addressed axis.

    Example::

        >>> build_move_absolute(Axis.ALL, [-5, 0, 7])
        'A:W-P5+P0+P7'
    """
    return _build_move(Command.MOVE_ABSOLUTE, axis, movement)


def build_move_relative(axis: Axis | int | str, movement: Sequence[int]) -> str:
    """Build a relative move (``M:``). The move is armed, not executed."""
    return _build_move(Command.MOVE_RELATIVE, axis, movement)


def build_move_continuous(axis: Axis | int | str, directions: Sequence[bool]) -> str:
    """Build a continuous jog (``J:``), one direction flag per axis.

    ``True`` jogs in the positive direction.
    """
    axis = check_parameters(axis, directions)
    signs = "".join(sign_of_bool(bool(d)) for d in directions)
    return f"{Command.MOVE_CONTINUOUS.value}{axis_code(axis)}{signs}"


def build_drive() -> str:
    """Build the trigger that executes every armed move."""
    return Command.DRIVE.value


def build_return_mechanical_origin(axis: Axis | int | str) -> str:
    return _build_axis_only(Command.MECHANICAL_ORIGIN, axis)


def build_return_logical_origin(axis: Axis | int | str) -> str:
    return _build_axis_only(Command.LOGICAL_ORIGIN, axis)


def build_stop(axis: Axis | int | str) -> str:
    """Build a deceleration stop for one axis or all of them."""
    return _build_axis_only(Command.STOP, axis)


def build_emergency_stop() -> str:
    """Build an emergency stop that also returns to the mechanical origin."""
    return f"{Command.STOP.value}{EMERGENCY_STOP_CODE}"


def build_clear_coordinate(axis: Axis | int | str) -> str:
    """Build a command that zeroes the logical coordinate."""
    return _build_axis_only(Command.CLEAR_COORDINATE, axis)


def build_set_step_amount(axis: Axis | int | str, steps: Sequence[int]) -> str:
    """Build a step amount (``D:``) command, one amount per axis.

    Step amounts are magnitudes and carry no sign.

    Example::

        >>> build_set_step_amount(Axis.SECOND, [100])
        'D:2100S'
    """
    axis = check_parameters(axis, steps)
    _check_pulse_counts(steps)
    for step in steps:
        if step < 0:
            raise ValueError(f"Step amount must be non-negative, got {step}")
    groups = "".join(f"{step}S" for step in steps)
    return f"{Command.STEP_AMOUNT.value}{axis_code(axis)}{groups}"


def build_hysteresis_acquisition() -> str:
    """Build the hysteresis curve data acquisition command."""
    return Command.HYSTERESIS.value


def build_set_closed_loop_mode(mode: ClosedLoopMode | int) -> str:
    """Build a closed-loop mode (``K:``) command.

    Args:
        mode: ``ClosedLoopMode.TRACK`` or ``ClosedLoopMode.LOCK``.
    """
    try:
        mode = ClosedLoopMode(mode)
    except ValueError:
        valid = [m.value for m in ClosedLoopMode]
        raise ValueError(f"Closed-loop mode must be one of {valid}, got {mode}") from None
    return f"{Command.CLOSED_LOOP_MODE.value}{mode.value}"


def build_query_status() -> str:
    """Build a status query; the reply always covers all three axes."""
    return Command.STATUS.value


def build_query_voltage(axis: Axis | int | str) -> str:
    return _build_axis_only(Command.VOLTAGE, axis)


def build_query_ack_status() -> str:
    return Command.ACK_STATUS.value


def build_query_model_name() -> str:
    return f"{Command.INTERNAL_INFO.value}{MODEL_NAME_CODE}"


def build_query_version() -> str:
    return f"{Command.INTERNAL_INFO.value}{VERSION_CODE}"


def build_query_speed(axis: Axis | int | str) -> str:
    return f"{Command.INTERNAL_INFO.value}{SPEED_CODE}{axis_code(axis)}"


def build_query_control_mode(axis: Axis | int | str) -> str:
    return f"{Command.INTERNAL_INFO.value}{CONTROL_MODE_CODE}{axis_code(axis)}"
