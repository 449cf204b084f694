"""Connector package - process execution on the local host."""

from power_cleaner.connector.local import CommandResult, LocalConnector

__all__ = ["CommandResult", "LocalConnector"]
