"""Control plane collaborators backing the store."""

from .document import StorageDocument
from .interfaces import ControlPlaneProtocol
from .memory_client import MemoryControlPlane

__all__ = ["StorageDocument", "ControlPlaneProtocol", "MemoryControlPlane"]
