"""High-level FINE-503 controller.

Each method validates its arguments, builds one command line, sends it
and decodes the reply. Nothing is written when validation fails.

Move commands only arm a move. Nothing moves until :meth:`Fine503.drive`
sends ``G:``, so several axes can be armed and then started together::

    with Fine503.from_settings(SerialSettings(port="COM3")) as stage:
        stage.move_absolute(Axis.FIRST, [150])
        stage.move_absolute(Axis.SECOND, [250])
        stage.drive()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .models.settings import SerialSettings
from .protocol import commands, parser
from .protocol.axis import Axis, ClosedLoopMode
from .protocol.parser import StatusReply
from .transport.serial_connection import SerialConnection

logger = logging.getLogger(__name__)

AxisLike = Axis | int | str


class Fine503:
    """Command/response facade over a :class:`SerialConnection`.

    The controller owns the connection: :meth:`close` (or leaving a
    ``with`` block) releases the port.
    """

    def __init__(self, connection: SerialConnection) -> None:
        self._connection = connection

    @classmethod
    def from_settings(cls, settings: SerialSettings) -> Fine503:
        return cls(
            SerialConnection(
                settings.port,
                settings.baud_rate,
                timeout=settings.timeout,
                echo=settings.echo,
            )
        )

    @property
    def connection(self) -> SerialConnection:
        return self._connection

    @property
    def is_open(self) -> bool:
        return self._connection.connected

    def open(self) -> None:
        self._connection.open()

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> Fine503:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _request(self, command: str) -> str:
        logger.debug("Sending %s", command)
        return self._connection.send_and_receive(command)

    # ─── MOTION ──────────────────────────────────────────────────────

    def move_absolute(self, axis: AxisLike, movement: Sequence[int]) -> str:
        """Arm an absolute move.

        Args:
            axis: Axis to move, or ``Axis.ALL``.
            movement: Target pulse counts, one per addressed axis.

        Returns:
            The device acknowledgement, verbatim.
        """
        return self._request(commands.build_move_absolute(axis, movement))

    def move_relative(self, axis: AxisLike, movement: Sequence[int]) -> str:
        """Arm a relative move by the given signed pulse counts."""
        return self._request(commands.build_move_relative(axis, movement))

    def move_continuous(self, axis: AxisLike, directions: Sequence[bool]) -> str:
        """Arm a continuous jog; ``True`` jogs towards positive."""
        return self._request(commands.build_move_continuous(axis, directions))

    def drive(self) -> str:
        """Execute every armed move."""
        return self._request(commands.build_drive())

    def return_mechanical_origin(self, axis: AxisLike) -> str:
        return self._request(commands.build_return_mechanical_origin(axis))

    def return_logical_origin(self, axis: AxisLike) -> str:
        return self._request(commands.build_return_logical_origin(axis))

    def stop(self, axis: AxisLike) -> str:
        return self._request(commands.build_stop(axis))

    def emergency_stop(self) -> str:
        """Stop every axis immediately and return to the mechanical origin."""
        return self._request(commands.build_emergency_stop())

    # ─── SETTINGS ────────────────────────────────────────────────────

    def clear_coordinate(self, axis: AxisLike) -> str:
        return self._request(commands.build_clear_coordinate(axis))

    def set_step_amount(self, axis: AxisLike, steps: Sequence[int]) -> str:
        """Set the pulses per step, one amount per addressed axis."""
        return self._request(commands.build_set_step_amount(axis, steps))

    def acquire_hysteresis(self) -> str:
        """Start hysteresis curve data acquisition."""
        return self._request(commands.build_hysteresis_acquisition())

    def set_closed_loop_mode(self, mode: ClosedLoopMode | int) -> str:
        return self._request(commands.build_set_closed_loop_mode(mode))

    # ─── QUERIES ─────────────────────────────────────────────────────

    def get_status(self) -> StatusReply:
        """Read positions and state codes of all three axes."""
        return parser.parse_status(self._request(commands.build_query_status()))

    def get_voltage(self, axis: AxisLike) -> list[int]:
        reply = self._request(commands.build_query_voltage(axis))
        return parser.parse_voltage(reply, axis)

    def get_ack_status(self) -> str:
        """Return the single-character ready code."""
        return parser.parse_ack_status(self._request(commands.build_query_ack_status()))

    def get_model_name(self) -> str:
        return parser.parse_text(self._request(commands.build_query_model_name()))

    def get_version(self) -> str:
        return parser.parse_text(self._request(commands.build_query_version()))

    def get_speed(self, axis: AxisLike) -> list[int]:
        reply = self._request(commands.build_query_speed(axis))
        return parser.parse_speed(reply, axis)

    def get_control_mode(self, axis: AxisLike) -> list[int]:
        reply = self._request(commands.build_query_control_mode(axis))
        return parser.parse_control_mode(reply, axis)
