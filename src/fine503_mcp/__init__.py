"""FINE-503 piezo stage controller protocol layer and MCP server."""

from .controller import Fine503
from .protocol.axis import Axis, ClosedLoopMode

__version__ = "0.1.0"
