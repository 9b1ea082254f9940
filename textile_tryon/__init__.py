"""AI virtual try-on for a textile catalogue."""

__version__ = "1.0.0"
