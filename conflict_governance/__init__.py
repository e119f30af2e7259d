"""Conflict Governance: time-windowed authority for two linked partners."""

__version__ = "1.0.0"
