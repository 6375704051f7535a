"""Persistence adapters."""

from .memory import InMemoryStore
from .store import FieldStore, Subscription, VisitChange

__all__ = ["FieldStore", "InMemoryStore", "Subscription", "VisitChange"]
