"""Writer Studio: backend for the writer dashboard (auth, submissions and view analytics)."""

__version__ = "0.1.0"
