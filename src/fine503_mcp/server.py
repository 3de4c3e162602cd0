"""MCP server entry point for the FINE-503 piezo stage controller.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .controller import Fine503
from .models.settings import SerialSettings
from .protocol.axis import Axis, ClosedLoopMode
from .protocol.commands import Command
from .protocol.errors import Fine503Error
from .transport.serial_connection import VALID_BAUD_RATES

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "fine503",
    instructions="MCP server for the FINE-503 three-axis piezo stage controller",
)

# Global connection state
_controller: Fine503 | None = None


def _get_controller() -> Fine503:
    """Get the open controller, raising if not connected."""
    if _controller is None or not _controller.is_open:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _controller


COMMAND_REFERENCE = {
    "move_absolute": {"single": "A:{axis}{sign}P{pulses}", "all": "A:W({sign}P{pulses})x3"},
    "move_relative": {"single": "M:{axis}{sign}P{pulses}", "all": "M:W({sign}P{pulses})x3"},
    "move_continuous": {"single": "J:{axis}{sign}", "all": "J:W({sign})x3"},
    "drive": {"single": "G:", "all": "G:"},
    "return_mechanical_origin": {"single": "H:{axis}", "all": "H:W"},
    "return_logical_origin": {"single": "N:{axis}", "all": "N:W"},
    "stop": {"single": "L:{axis}", "all": "L:W"},
    "emergency_stop": {"single": "L:E"},
    "clear_coordinate": {"single": "R:{axis}", "all": "R:W"},
    "set_step_amount": {"single": "D:{axis}{pulses}S", "all": "D:W({pulses}S)x3"},
    "acquire_hysteresis": {"single": "@:"},
    "set_closed_loop_mode": {"single": "K:{mode}"},
    "get_status": {"all": "Q:"},
    "get_voltage": {"single": "V:{axis}", "all": "V:W"},
    "get_ack_status": {"single": "!:"},
    "get_model_name": {"single": "?:N"},
    "get_version": {"single": "?:V"},
    "get_speed": {"single": "?:D{axis}", "all": "?:DW"},
    "get_control_mode": {"single": "?:C{axis}", "all": "?:CW"},
}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str | None = None,
    baud_rate: int | None = None,
    echo: bool | None = None,
) -> dict[str, Any]:
    """Open the RS-232 connection to the FINE-503 controller.

    Omitted arguments fall back to FINE503_PORT, FINE503_BAUD and
    FINE503_ECHO from the environment.

    Args:
        port: Serial port name, e.g. 'COM3' or '/dev/ttyUSB0'.
        baud_rate: 4800, 9600, 19200 or 38400 (must match the controller).
        echo: Log every sent and received line.
    """
    global _controller
    if _controller is not None and _controller.is_open:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _controller.connection.port,
        }

    try:
        settings = SerialSettings.from_env()
        if port is not None:
            settings.port = port
        if baud_rate is not None:
            settings.baud_rate = baud_rate
        if echo is not None:
            settings.echo = echo
        controller = Fine503.from_settings(settings)
        controller.open()
    except (Fine503Error, ValueError) as e:
        return {"error": str(e), "valid_baud_rates": list(VALID_BAUD_RATES)}

    _controller = controller
    return {"connected": True, **settings.to_dict()}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial connection to the controller."""
    global _controller
    if _controller is None:
        return {"disconnected": True}
    _controller.close()
    _controller = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Retrieve the controller model name and firmware version."""
    controller = _get_controller()
    try:
        return {
            "model": controller.get_model_name(),
            "version": controller.get_version(),
        }
    except Fine503Error as e:
        return {"error": str(e)}


# ─── MOTION TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def move_absolute(axis: str, movement: list[int]) -> dict[str, Any]:
    """Arm an absolute move. Call 'drive' to start it.

    Args:
        axis: '1', '2', '3' or 'all'.
        movement: Target pulse counts, one value (single axis) or three (all).
    """
    try:
        reply = _get_controller().move_absolute(axis, movement)
    except (Fine503Error, ValueError) as e:
        return {"error": str(e)}
    return {"armed": True, "reply": reply}


@mcp.tool()
def move_relative(axis: str, movement: list[int]) -> dict[str, Any]:
    """Arm a relative move. Call 'drive' to start it.

    Args:
        axis: '1', '2', '3' or 'all'.
        movement: Signed pulse offsets, one value (single axis) or three (all).
    """
    try:
        reply = _get_controller().move_relative(axis, movement)
    except (Fine503Error, ValueError) as e:
        return {"error": str(e)}
    return {"armed": True, "reply": reply}


@mcp.tool()
def move_continuous(axis: str, directions: list[bool]) -> dict[str, Any]:
    """Arm a continuous jog. Call 'drive' to start it and 'stop' to end it.

    Args:
        axis: '1', '2', '3' or 'all'.
        directions: True for positive, one value (single axis) or three (all).
    """
    try:
        reply = _get_controller().move_continuous(axis, directions)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"armed": True, "reply": reply}


@mcp.tool()
def drive() -> dict[str, Any]:
    """Start every armed move."""
    try:
        reply = _get_controller().drive()
    except Fine503Error as e:
        return {"error": str(e)}
    return {"reply": reply}


@mcp.tool()
def return_to_origin(axis: str, logical: bool = False) -> dict[str, Any]:
    """Return an axis to its mechanical origin, or to its logical origin.

    Args:
        axis: '1', '2', '3' or 'all'.
        logical: Return to the logical (user-cleared) origin instead.
    """
    controller = _get_controller()
    try:
        if logical:
            reply = controller.return_logical_origin(axis)
        else:
            reply = controller.return_mechanical_origin(axis)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"reply": reply, "origin": "logical" if logical else "mechanical"}


@mcp.tool()
def stop(axis: str) -> dict[str, Any]:
    """Decelerate and stop an axis, or all axes.

    Args:
        axis: '1', '2', '3' or 'all'.
    """
    try:
        reply = _get_controller().stop(axis)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"reply": reply}


@mcp.tool()
def emergency_stop() -> dict[str, Any]:
    """Stop all axes immediately and return to the mechanical origin."""
    try:
        reply = _get_controller().emergency_stop()
    except Fine503Error as e:
        return {"error": str(e)}
    return {"reply": reply}


# ─── SETTINGS TOOLS ──────────────────────────────────────────────────

@mcp.tool()
def clear_coordinate(axis: str) -> dict[str, Any]:
    """Zero the logical coordinate of an axis, or all axes.

    Args:
        axis: '1', '2', '3' or 'all'.
    """
    try:
        reply = _get_controller().clear_coordinate(axis)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"reply": reply}


@mcp.tool()
def set_step_amount(axis: str, steps: list[int]) -> dict[str, Any]:
    """Set the pulses moved per step.

    Args:
        axis: '1', '2', '3' or 'all'.
        steps: Non-negative pulse counts, one value (single axis) or three (all).
    """
    try:
        reply = _get_controller().set_step_amount(axis, steps)
    except (Fine503Error, ValueError) as e:
        return {"error": str(e)}
    return {"reply": reply}


@mcp.tool()
def acquire_hysteresis() -> dict[str, Any]:
    """Start hysteresis curve data acquisition."""
    try:
        reply = _get_controller().acquire_hysteresis()
    except Fine503Error as e:
        return {"error": str(e)}
    return {"reply": reply}


@mcp.tool()
def set_closed_loop_mode(mode: str) -> dict[str, Any]:
    """Set the closed-loop position feedback mode.

    Args:
        mode: 'track' or 'lock'.
    """
    try:
        loop_mode = ClosedLoopMode[mode.strip().upper()]
    except KeyError:
        return {"error": f"Unknown mode '{mode}'. Valid: {[m.name.lower() for m in ClosedLoopMode]}"}

    try:
        reply = _get_controller().set_closed_loop_mode(loop_mode)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"mode": loop_mode.name.lower(), "reply": reply}


# ─── QUERY TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_status() -> dict[str, Any]:
    """Read the position and state code of all three axes."""
    try:
        status = _get_controller().get_status()
    except Fine503Error as e:
        return {"error": str(e)}
    return status.to_dict()


@mcp.tool()
def get_voltage(axis: str) -> dict[str, Any]:
    """Read the piezo drive voltage of an axis, or all axes.

    Args:
        axis: '1', '2', '3' or 'all'.
    """
    try:
        values = _get_controller().get_voltage(axis)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"voltage": values}


@mcp.tool()
def get_ack_status() -> dict[str, Any]:
    """Read the single-character ready status."""
    try:
        status = _get_controller().get_ack_status()
    except Fine503Error as e:
        return {"error": str(e)}
    return {"status": status}


@mcp.tool()
def get_speed(axis: str) -> dict[str, Any]:
    """Read the speed setting of an axis, or all axes.

    Args:
        axis: '1', '2', '3' or 'all'.
    """
    try:
        values = _get_controller().get_speed(axis)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"speed": values}


@mcp.tool()
def get_control_mode(axis: str) -> dict[str, Any]:
    """Read the control mode of an axis, or all axes.

    Args:
        axis: '1', '2', '3' or 'all'.
    """
    try:
        values = _get_controller().get_control_mode(axis)
    except Fine503Error as e:
        return {"error": str(e)}
    return {"control_mode": values}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("fine503://protocol/commands")
def resource_commands() -> str:
    """ASCII command grammar for every tool."""
    return json.dumps({
        "axes": {a.name.lower(): a.value for a in Axis},
        "closed_loop_modes": {m.name.lower(): m.value for m in ClosedLoopMode},
        "prefixes": {c.name.lower(): c.value for c in Command},
        "commands": COMMAND_REFERENCE,
    })


@mcp.resource("fine503://connection")
def resource_connection() -> str:
    """Current connection settings."""
    if _controller is None or not _controller.is_open:
        return json.dumps({"connected": False})
    conn = _controller.connection
    return json.dumps({
        "connected": True,
        "port": conn.port,
        "baud_rate": conn.baud_rate,
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def scan_axis(axis: str, stop_at: int, increment: int) -> str:
    """Step one axis from the origin out to a target in fixed increments.

    Args:
        axis: '1', '2' or '3'.
        stop_at: Last absolute pulse position.
        increment: Pulses between positions.
    """
    return f"""Scan axis {axis} of the FINE-503 stage.

1. Call emergency_stop to return every axis to the mechanical origin.
2. For each position from {increment} to {stop_at} in steps of {increment}:
   - call move_absolute with axis "{axis}" and movement [position]
   - call drive to start the move
   - call get_status and report the position of axis {axis}
3. Finish with return_to_origin on axis "{axis}".

Stop and report if any tool returns an error or an NG reply."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
