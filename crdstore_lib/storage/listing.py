"""Prefix listing over the flat key/value mapping."""
from __future__ import annotations
from typing import List, Mapping

from crdstore_lib.keys import KV, SEPARATOR


def list_under(data: Mapping[str, str], prefix: str) -> List[KV]:
    """Return the entries of `data` that live below `prefix`.

    Listing the root `/` returns every entry with its key unchanged. For any
    other prefix an entry is included only when its key continues past the
    prefix with a separator, so `/foo/bar` is under `/foo` but `/foobar`
    and `/foo` itself are not. Included keys are returned relative to the
    prefix, e.g. `bar`.
    """
    if prefix == SEPARATOR:
        return [KV(k, v) for k, v in data.items()]

    out: List[KV] = []
    n = len(prefix)
    for k, v in data.items():
        if len(k) <= n + 1:
            continue
        if not k.startswith(prefix):
            continue
        if k[n] != SEPARATOR:
            continue
        out.append(KV(k[n + 1:], v))
    return out
