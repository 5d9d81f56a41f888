"""Key helpers for the hierarchical keyspace.

Keys are slash-delimited paths such as `/foo/bar`. Callers may pass keys
with or without the leading slash; `sanitize_key` normalizes them before
they reach the backing document.
"""
from __future__ import annotations
from typing import NamedTuple

from crdstore_lib.errors import InvalidKeyError

SEPARATOR = "/"


def sanitize_key(key: str) -> str:
    """Return the normalized form of `key`.

    - surrounding whitespace is removed
    - a leading `/` is added when missing
    - a single trailing `/` is removed (except for the root key `/`)
    - empty keys and keys containing `//` are rejected
    """
    if not isinstance(key, str):
        raise InvalidKeyError(f"key must be a string, got {type(key).__name__}")
    k = key.strip()
    if not k:
        raise InvalidKeyError("key must not be empty")
    if not k.startswith(SEPARATOR):
        k = SEPARATOR + k
    if SEPARATOR * 2 in k:
        raise InvalidKeyError(f"key={key!r} must not contain empty path segments")
    if len(k) > 1 and k.endswith(SEPARATOR):
        k = k[:-1]
    return k


class KV(NamedTuple):
    key: str
    value: str

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value}
