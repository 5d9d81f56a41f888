"""Key-value storage backed by a single StorageConfig custom object.

The whole keyspace lives in one flat mapping inside one remote document.
Reads fetch the document on every call; writes fetch it, change the
mapping in memory and replace the full document under the version that
was read. Nothing is cached between calls.

Concurrent writers race on the whole document. The version check turns a
write based on a stale read into a `ConflictError`, but callers are
responsible for retrying the full read-modify-write cycle; there is no
per-key atomicity.

Usage:

    storage = CRDStorage(StoreConfig(client=client, name='crdstore', namespace='crdstore'))
    storage.boot(ctx)
    storage.put(ctx, '/foo/bar', 'baz')
    storage.list(ctx, '/foo')   # [KV(key='bar', value='baz')]
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from crdstore_lib.context import Context, ensure_context
from crdstore_lib.errors import (
    AlreadyExistsError,
    InvalidConfigError,
    NotFoundError,
    StorageError,
)
from crdstore_lib.keys import KV, sanitize_key
from crdstore_lib.kube.document import StorageDocument
from crdstore_lib.kube.interfaces import ControlPlaneProtocol
from crdstore_lib.retry import BackoffPolicy, retry
from .listing import list_under

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
    client: Optional[ControlPlaneProtocol] = None
    name: str = ""
    namespace: str = ""
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)


class CRDStorage:
    def __init__(self, config: StoreConfig) -> None:
        """Create an unbooted storage instance.

        `boot` must be called before any read or write operation.
        """
        if config.client is None:
            raise InvalidConfigError("config.client must not be empty")
        if not config.name:
            raise InvalidConfigError("config.name must not be empty")
        if not config.namespace:
            raise InvalidConfigError("config.namespace must not be empty")
        if config.backoff is None:
            raise InvalidConfigError("config.backoff must not be empty")

        self._client = config.client
        self.name = config.name
        self.namespace = config.namespace
        self._backoff = config.backoff

    def __repr__(self) -> str:
        return f"CRDStorage(namespace={self.namespace!r}, name={self.name!r})"

    def boot(self, ctx: Optional[Context] = None) -> None:
        """Make sure the namespace and the backing document exist.

        Safe to call more than once and from several processes: resources
        that already exist are left untouched.
        """
        ctx = ensure_context(ctx)

        # Create namespace.
        try:
            self._client.create_namespace(ctx, self.namespace)
            logger.info("Created namespace %s", self.namespace)
        except AlreadyExistsError:
            logger.info("Namespace %s already exists", self.namespace)
        except StorageError as e:
            raise e.with_context(f"booting storage, creating namespace {self.namespace}") from e

        # Create backing document.
        document = StorageDocument.new(self.name, self.namespace)

        def create_document() -> None:
            try:
                self._client.create_document(ctx, document)
                logger.info("Created storage document %s/%s", self.namespace, self.name)
            except AlreadyExistsError:
                logger.info("Storage document %s/%s already exists", self.namespace, self.name)

        try:
            retry(create_document, self._backoff, ctx, name=f"creating {self.namespace}/{self.name}")
        except StorageError as e:
            raise e.with_context(f"booting storage, creating document {self.namespace}/{self.name}") from e

    def exists(self, ctx: Optional[Context], key: str) -> bool:
        key = sanitize_key(key)
        data = self._fetch_mapping(ctx, f"checking existence key={key}")
        return key in data

    def search(self, ctx: Optional[Context], key: str) -> str:
        key = sanitize_key(key)
        data = self._fetch_mapping(ctx, f"searching for key={key}")
        try:
            return data[key]
        except KeyError:
            raise NotFoundError(f"searching for key={key}: not found") from None

    def list(self, ctx: Optional[Context], key: str) -> List[KV]:
        key = sanitize_key(key)
        data = self._fetch_mapping(ctx, f"listing key={key}")
        return list_under(data, key)

    def put(self, ctx: Optional[Context], key: str, value: str) -> None:
        key = sanitize_key(key)
        op = f"putting key={key}"
        document = self._fetch_document(ctx, op)
        if document.data is None:
            document.data = {}
        document.data[key] = value
        self._write(ctx, document, op)

    def delete(self, ctx: Optional[Context], key: str) -> None:
        key = sanitize_key(key)
        op = f"deleting key={key}"
        document = self._fetch_document(ctx, op)
        if not document.data or key not in document.data:
            logger.debug("%s: key not present, nothing to do", op)
            return
        del document.data[key]
        self._write(ctx, document, op)

    def _fetch_document(self, ctx: Optional[Context], op: str) -> StorageDocument:
        logger.debug("%s: fetching %s/%s", op, self.namespace, self.name)
        try:
            return self._client.get_document(ensure_context(ctx), self.namespace, self.name)
        except StorageError as e:
            raise e.with_context(op) from e

    def _fetch_mapping(self, ctx: Optional[Context], op: str) -> Dict[str, str]:
        return self._fetch_document(ctx, op).mapping()

    def _write(self, ctx: Optional[Context], document: StorageDocument, op: str) -> None:
        logger.debug("%s: writing %s/%s at version %s", op, self.namespace, self.name, document.resource_version)
        try:
            self._client.update_document(ensure_context(ctx), document)
        except StorageError as e:
            raise e.with_context(op) from e
