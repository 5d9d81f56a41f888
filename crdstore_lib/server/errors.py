"""Translation of store errors into HTTP responses."""
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from crdstore_lib.errors import (
    AlreadyExistsError,
    BackendError,
    CancelledError,
    ConflictError,
    DeadlineExceededError,
    InvalidConfigError,
    InvalidKeyError,
    NotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

# Order matters: subclasses before their bases.
STATUS_CODES = (
    (InvalidKeyError, 400, 'invalid_key'),
    (NotFoundError, 404, 'not_found'),
    (ConflictError, 409, 'conflict'),
    (AlreadyExistsError, 409, 'already_exists'),
    (DeadlineExceededError, 504, 'deadline_exceeded'),
    (CancelledError, 499, 'cancelled'),
    (BackendError, 502, 'backend_error'),
    (InvalidConfigError, 500, 'invalid_config'),
)


def status_for(exc: StorageError) -> tuple[int, str]:
    for cls, status, code in STATUS_CODES:
        if isinstance(exc, cls):
            return status, code
    return 500, 'storage_error'


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    status, code = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.debug("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={'error': code, 'message': str(exc)})
