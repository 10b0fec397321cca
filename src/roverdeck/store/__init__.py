"""Remote rover configuration stores."""

from roverdeck.store.base import RoverStore
from roverdeck.store.memory import MemoryRoverStore
from roverdeck.store.rest import RestRoverStore

__all__ = ["MemoryRoverStore", "RestRoverStore", "RoverStore"]
