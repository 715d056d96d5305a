"""Upstream dispatchers sending requests to the EHR middleware."""

from .http_dispatcher import HttpEhrDispatcher

__all__ = ["HttpEhrDispatcher"]
