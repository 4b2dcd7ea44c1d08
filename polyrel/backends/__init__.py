from polyrel.backends.base import Backend
from polyrel.backends.memory import MemoryBackend, MemoryStore
