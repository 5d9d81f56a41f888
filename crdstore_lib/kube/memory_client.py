"""In-process control plane used for development and tests.

Mirrors the behaviour of the Kubernetes API that the store relies on:
resource versions increase on every write, updates carrying a stale
version are rejected, documents can only be created in existing
namespaces and objects are deep-copied in and out so callers never share
state with the backend.
"""
from __future__ import annotations
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple
import itertools
import copy
import logging

from crdstore_lib.context import Context, ensure_context
from crdstore_lib.errors import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from .crd import crd_name
from .document import StorageDocument, namespace_manifest

logger = logging.getLogger(__name__)


class MemoryControlPlane:
    def __init__(self) -> None:
        self._lock = RLock()
        self._versions = itertools.count(1)
        self._namespaces: Dict[str, Dict[str, Any]] = {}
        self._documents: Dict[Tuple[str, str], StorageDocument] = {}
        self._resource_types: Dict[str, Dict[str, Any]] = {}
        self._faults: Dict[str, List[StorageError]] = {}
        self.calls: List[str] = []

    def fail_next(self, operation: str, error: StorageError, times: int = 1) -> None:
        """Make the next `times` calls of `operation` raise `error`."""
        with self._lock:
            self._faults.setdefault(operation, []).extend([error] * times)

    def _enter(self, ctx: Optional[Context], operation: str) -> None:
        ensure_context(ctx).raise_if_done(operation)
        with self._lock:
            self.calls.append(operation)
            faults = self._faults.get(operation)
            if faults:
                raise faults.pop(0)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def create_namespace(self, ctx: Optional[Context], name: str) -> Dict[str, Any]:
        self._enter(ctx, "create_namespace")
        with self._lock:
            if name in self._namespaces:
                raise AlreadyExistsError(f'namespaces "{name}" already exists')
            manifest = namespace_manifest(name)
            manifest["metadata"]["resourceVersion"] = self._next_version()
            self._namespaces[name] = manifest
            return copy.deepcopy(manifest)

    def create_document(self, ctx: Optional[Context], document: StorageDocument) -> StorageDocument:
        self._enter(ctx, "create_document")
        key = (document.namespace, document.name)
        with self._lock:
            if document.namespace not in self._namespaces:
                raise NotFoundError(f'namespaces "{document.namespace}" not found')
            if key in self._documents:
                raise AlreadyExistsError(f'storageconfigs "{document.name}" already exists')
            stored = document.copy()
            stored.resource_version = self._next_version()
            self._documents[key] = stored
            return stored.copy()

    def get_document(self, ctx: Optional[Context], namespace: str, name: str) -> StorageDocument:
        self._enter(ctx, "get_document")
        with self._lock:
            stored = self._documents.get((namespace, name))
            if stored is None:
                raise NotFoundError(f'storageconfigs "{name}" not found')
            return stored.copy()

    def update_document(self, ctx: Optional[Context], document: StorageDocument) -> StorageDocument:
        self._enter(ctx, "update_document")
        key = (document.namespace, document.name)
        with self._lock:
            stored = self._documents.get(key)
            if stored is None:
                raise NotFoundError(f'storageconfigs "{document.name}" not found')
            if document.resource_version != stored.resource_version:
                raise ConflictError(
                    f'Operation cannot be fulfilled on storageconfigs "{document.name}": '
                    "the object has been modified; please apply your changes to the latest version and try again"
                )
            updated = document.copy()
            updated.resource_version = self._next_version()
            self._documents[key] = updated
            return updated.copy()

    def ensure_resource_type(self, ctx: Optional[Context], crd: Dict[str, Any]) -> None:
        self._enter(ctx, "ensure_resource_type")
        with self._lock:
            self._resource_types.setdefault(crd_name(crd), copy.deepcopy(crd))

    # Inspection helpers
    ####################

    def has_namespace(self, name: str) -> bool:
        with self._lock:
            return name in self._namespaces

    def document_count(self, namespace: Optional[str] = None) -> int:
        with self._lock:
            if namespace is None:
                return len(self._documents)
            return sum(1 for ns, _ in self._documents if ns == namespace)

    def resource_types(self) -> List[str]:
        with self._lock:
            return list(self._resource_types.keys())

    def replace_raw(self, document: StorageDocument) -> None:
        """Store `document` as-is, bypassing version checks."""
        with self._lock:
            stored = document.copy()
            stored.resource_version = self._next_version()
            self._documents[(document.namespace, document.name)] = stored
