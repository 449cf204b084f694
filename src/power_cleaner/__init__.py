"""power-cleaner: sequential system-maintenance action runner."""

__version__ = "1.1.0"
