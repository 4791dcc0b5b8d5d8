"""Callback/hook system for tether lifecycle events and telemetry."""

from tether.callbacks.base import BaseCallback, TetherCallback, dispatch
from tether.callbacks.logging import LoggingCallback

__all__ = ["TetherCallback", "BaseCallback", "LoggingCallback", "dispatch"]
