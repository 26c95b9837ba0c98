"""HTTP exposition — the single health-check endpoint."""

from .server import create_app
