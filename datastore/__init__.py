"""
Data access for the Clerkship Scheduler.
"""

from .base import DataStore, PersistenceError
from .memory import InMemoryDataStore
from .json_store import JsonDataStore

__all__ = [
    "DataStore",
    "PersistenceError",
    "InMemoryDataStore",
    "JsonDataStore",
]
