"""Protocol layer: axis selection, command builders, and response parsing."""

from .axis import Axis, ClosedLoopMode
from .commands import Command
from .errors import Fine503Error
from .parser import StatusReply
