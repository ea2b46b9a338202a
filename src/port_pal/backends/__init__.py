from .base import ChangeCallback, ChangeNotifier, RegistryBackend, Unsubscribe
from .memory import InMemoryBroadcastHub, InMemoryChangeNotifier, InMemoryRegistryBackend
from .redis_store import RedisChangeNotifier, RedisRegistryBackend

__all__ = [
    "ChangeCallback",
    "ChangeNotifier",
    "InMemoryBroadcastHub",
    "InMemoryChangeNotifier",
    "InMemoryRegistryBackend",
    "RedisChangeNotifier",
    "RedisRegistryBackend",
    "RegistryBackend",
    "Unsubscribe",
]
