"""Pulseo: task board backend with cookie-based JWT sessions."""

__version__ = "1.0.0"
