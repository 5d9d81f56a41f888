"""CustomResourceDefinition for the StorageConfig kind.

Registering the resource type is a precondition of `CRDStorage.boot`; the
application factory applies this manifest when `boot.ensure_crd` is set.
"""
from __future__ import annotations
from typing import Any, Dict

from .document import GROUP, KIND, PLURAL, SINGULAR, VERSION


def storage_config_crd() -> Dict[str, Any]:
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{PLURAL}.{GROUP}"},
        "spec": {
            "group": GROUP,
            "scope": "Namespaced",
            "names": {
                "kind": KIND,
                "plural": PLURAL,
                "singular": SINGULAR,
            },
            "versions": [
                {
                    "name": VERSION,
                    "served": True,
                    "storage": True,
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "properties": {
                                "spec": {
                                    "type": "object",
                                    "properties": {
                                        "storage": {
                                            "type": "object",
                                            "properties": {
                                                "data": {
                                                    "type": "object",
                                                    "additionalProperties": {"type": "string"},
                                                },
                                            },
                                        },
                                    },
                                },
                            },
                        },
                    },
                },
            ],
        },
    }


def crd_name(crd: Dict[str, Any]) -> str:
    return (crd.get("metadata") or {}).get("name", "")
