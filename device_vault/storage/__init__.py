"""Document store backends for the device vault."""

from .abstract import AbstractStore
from .memory import MemoryStore
from .postgres import PostgresStore

__all__ = [
    "AbstractStore",
    "MemoryStore",
    "PostgresStore",
]
