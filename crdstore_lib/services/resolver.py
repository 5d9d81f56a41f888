from typing import Any
from fastapi import HTTPException
from starlette.requests import Request

from crdstore_lib.storage.interfaces import KeyValueStorageProtocol


def resolve_service(request: Request, name: str) -> Any:
    """Resolve a named service from the application's service container.

    Raises HTTP 500 when the container or the registration is missing.
    """
    container = getattr(request.app.state, 'container', None)
    if container is None:
        raise HTTPException(status_code=500, detail="Service container not configured")
    try:
        return container.get(name)
    except KeyError:
        raise HTTPException(status_code=500, detail=f"Service '{name}' not configured")


def resolve_storage(request: Request) -> KeyValueStorageProtocol:
    storage = resolve_service(request, 'storage')
    if not getattr(request.app.state, 'booted', False):
        raise HTTPException(status_code=503, detail={'error': 'not_ready', 'message': 'Storage is not booted'})
    return storage
