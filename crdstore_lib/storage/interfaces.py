from typing import List, Optional, Protocol, runtime_checkable

from crdstore_lib.context import Context
from crdstore_lib.keys import KV


@runtime_checkable
class KeyValueStorageProtocol(Protocol):
    """Key-value contract exposed to callers.

    Implementations follow the semantics documented on
    `crdstore_lib.storage.crd_storage.CRDStorage`: `search` raises
    `NotFoundError` on a miss, deleting an absent key is a no-op, and
    concurrent writers may see `ConflictError`.
    """

    def boot(self, ctx: Optional[Context]) -> None: ...

    def exists(self, ctx: Optional[Context], key: str) -> bool: ...

    def search(self, ctx: Optional[Context], key: str) -> str: ...

    def list(self, ctx: Optional[Context], key: str) -> List[KV]: ...

    def put(self, ctx: Optional[Context], key: str, value: str) -> None: ...

    def delete(self, ctx: Optional[Context], key: str) -> None: ...
