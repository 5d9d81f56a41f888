"""Key-value storage package."""

from .crd_storage import CRDStorage, StoreConfig
from .interfaces import KeyValueStorageProtocol
from .listing import list_under

__all__ = ["CRDStorage", "StoreConfig", "KeyValueStorageProtocol", "list_under"]
