"""Request and response store implementations."""

from .memory import InMemoryRequestStore, InMemoryResponseStore

__all__ = ["InMemoryRequestStore", "InMemoryResponseStore"]
