"""Hierarchical key-value store backed by a Kubernetes custom resource."""

from crdstore_lib.context import Context
from crdstore_lib.keys import KV
from crdstore_lib.storage import CRDStorage, StoreConfig

__all__ = ["Context", "KV", "CRDStorage", "StoreConfig"]
