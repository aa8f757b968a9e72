"""Event-driven workflow core: flows, steps, actions, in-memory stores and request handlers."""

__version__ = "0.1.0"