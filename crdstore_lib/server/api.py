from typing import Optional
import logging

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from crdstore_lib.context import Context
from crdstore_lib.config.health import get_health
from crdstore_lib.services.resolver import resolve_service, resolve_storage

router = APIRouter()
logger = logging.getLogger(__name__)


class PutPayload(BaseModel):
    key: str
    value: str


def request_context(request: Request) -> Context:
    """Return a context bounded by the configured request timeout."""
    cfg = resolve_service(request, 'server_config')
    return Context.with_timeout(cfg.request_timeout_seconds)


@router.get('/health')
def api_health(request: Request):
    cfg = resolve_service(request, 'server_config')
    return get_health(backend=cfg.backend, booted=getattr(request.app.state, 'booted', False))


@router.get('/v1/kv/exists')
def api_kv_exists(request: Request, key: str = Query(...)):
    storage = resolve_storage(request)
    return {'key': key, 'exists': storage.exists(request_context(request), key)}


@router.get('/v1/kv/search')
def api_kv_search(request: Request, key: str = Query(...)):
    storage = resolve_storage(request)
    return {'key': key, 'value': storage.search(request_context(request), key)}


@router.get('/v1/kv/list')
def api_kv_list(request: Request, prefix: Optional[str] = Query(default='/')):
    storage = resolve_storage(request)
    items = storage.list(request_context(request), prefix or '/')
    return [kv.to_dict() for kv in items]


@router.put('/v1/kv')
def api_kv_put(request: Request, payload: PutPayload):
    storage = resolve_storage(request)
    logger.debug("Putting key %s", payload.key)
    storage.put(request_context(request), payload.key, payload.value)
    return {'ok': True, 'key': payload.key}


@router.delete('/v1/kv')
def api_kv_delete(request: Request, key: str = Query(...)):
    storage = resolve_storage(request)
    logger.debug("Deleting key %s", key)
    storage.delete(request_context(request), key)
    return {'ok': True, 'key': key}
