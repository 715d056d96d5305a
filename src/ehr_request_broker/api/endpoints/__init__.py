"""API endpoint modules."""

from . import callbacks, requests

__all__ = ["callbacks", "requests"]
