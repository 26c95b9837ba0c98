"""mybckchk — MySQL backend availability probe behind an HTTP health check."""

__version__ = "0.1.0"
