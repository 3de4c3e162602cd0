"""Data models for connection settings."""

from .settings import SerialSettings
