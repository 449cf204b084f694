"""Engine package - execution gate and runner."""

from power_cleaner.engine.gate import ExecutionGate
from power_cleaner.engine.runner import Runner

__all__ = ["ExecutionGate", "Runner"]
