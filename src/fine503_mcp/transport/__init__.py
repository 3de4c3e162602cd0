"""Serial transport to the controller."""

from .serial_connection import SerialConnection
