"""Agent Notifier: desktop notifications for local automation agents."""

__version__ = "0.1.0"
