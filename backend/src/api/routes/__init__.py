"""HTTP API route handlers."""

from . import research

__all__ = ["research"]
