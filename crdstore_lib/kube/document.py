"""The StorageConfig custom object that backs the keyspace.

On the wire the document looks like

    apiVersion: core.giantswarm.io/v1alpha1
    kind: StorageConfig
    metadata: {name: ..., namespace: ..., resourceVersion: ...}
    spec:
      storage:
        data: {"/foo": "bar", ...}

`StorageDocument` keeps the metadata it does not understand verbatim so a
fetched document can be written back without dropping server-side fields.
"""
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

GROUP = "core.giantswarm.io"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"
KIND = "StorageConfig"
PLURAL = "storageconfigs"
SINGULAR = "storageconfig"


@dataclass
class StorageDocument:
    name: str
    namespace: str
    resource_version: Optional[str] = None
    # None means the mapping attribute is absent on the remote object
    data: Optional[Dict[str, str]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, name: str, namespace: str) -> "StorageDocument":
        return cls(name=name, namespace=namespace, data={})

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "StorageDocument":
        meta = dict(obj.get("metadata") or {})
        spec = obj.get("spec") or {}
        storage = spec.get("storage") or {}
        data = storage.get("data")
        return cls(
            name=meta.pop("name", ""),
            namespace=meta.pop("namespace", ""),
            resource_version=meta.pop("resourceVersion", None),
            data=dict(data) if data is not None else None,
            metadata=meta,
        )

    def to_dict(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = copy.deepcopy(self.metadata)
        meta["name"] = self.name
        meta["namespace"] = self.namespace
        if self.resource_version is not None:
            meta["resourceVersion"] = self.resource_version
        return {
            "apiVersion": API_VERSION,
            "kind": KIND,
            "metadata": meta,
            "spec": {"storage": {"data": dict(self.data or {})}},
        }

    def mapping(self) -> Dict[str, str]:
        """Return a copy of the key/value mapping, empty when absent."""
        return dict(self.data or {})

    def copy(self) -> "StorageDocument":
        return copy.deepcopy(self)


def namespace_manifest(name: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": name},
    }
