from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from crdstore_lib.context import Context
from .document import StorageDocument


@runtime_checkable
class ControlPlaneProtocol(Protocol):
    """Remote document store consumed by `CRDStorage`.

    Implementations translate backend failures into the taxonomy in
    `crdstore_lib.errors`: `AlreadyExistsError` for creates on existing
    resources, `NotFoundError` for missing ones, `ConflictError` when an
    update carries a stale `resource_version` and `BackendError` for
    everything else. Every call must honour `ctx`.
    """

    def create_namespace(self, ctx: Optional[Context], name: str) -> Dict[str, Any]: ...

    def create_document(self, ctx: Optional[Context], document: StorageDocument) -> StorageDocument: ...

    def get_document(self, ctx: Optional[Context], namespace: str, name: str) -> StorageDocument: ...

    def update_document(self, ctx: Optional[Context], document: StorageDocument) -> StorageDocument:
        """Replace the whole document.

        The write only succeeds if `document.resource_version` still matches
        the version held by the backend.
        """
        ...

    def ensure_resource_type(self, ctx: Optional[Context], crd: Dict[str, Any]) -> None: ...
