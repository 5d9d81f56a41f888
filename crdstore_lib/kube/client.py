"""Control plane client talking to the Kubernetes REST API.

Only the handful of endpoints the store needs are wrapped: namespace
creation, CRUD on StorageConfig custom objects and CRD registration.
Failures are translated from the Kubernetes `Status` body into the
exceptions of `crdstore_lib.errors`.
"""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import logging

import requests

from crdstore_lib.context import Context, ensure_context
from crdstore_lib.errors import (
    AlreadyExistsError,
    BackendError,
    ConflictError,
    DeadlineExceededError,
    NotFoundError,
)
from .crd import crd_name
from .document import GROUP, PLURAL, VERSION, StorageDocument, namespace_manifest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
# How often an in-flight request checks its context for cancellation
POLL_INTERVAL = 0.05

NAMESPACES_PATH = "/api/v1/namespaces"
CRDS_PATH = "/apis/apiextensions.k8s.io/v1/customresourcedefinitions"


def documents_path(namespace: str, name: Optional[str] = None) -> str:
    path = f"/apis/{GROUP}/{VERSION}/namespaces/{namespace}/{PLURAL}"
    if name:
        path += f"/{name}"
    return path


class KubeClient:
    def __init__(
        self,
        server: str,
        token: Optional[str] = None,
        verify: Union[bool, str] = True,
        cert: Optional[Tuple[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[Any] = None,
        max_workers: int = 4,
    ) -> None:
        if not server:
            raise ValueError("KubeClient requires a server address")
        self.server = server.rstrip("/")
        self.verify = verify
        self.cert = cert
        self.timeout = timeout
        self._session = session if session is not None else requests.Session()
        self._headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kube-client")
        logger.info("Using KubeClient for %s", self.server)

    @classmethod
    def from_config(cls, cfg, timeout: float = DEFAULT_TIMEOUT) -> "KubeClient":
        """Build a client from a `KubernetesConfig`."""
        token = cfg.token
        if not token and cfg.token_file:
            token_path = Path(cfg.token_file)
            if token_path.exists():
                token = token_path.read_text(encoding="utf-8").strip()
        verify: Union[bool, str] = True
        if cfg.insecure_skip_tls_verify:
            verify = False
        elif cfg.ca_file and Path(cfg.ca_file).exists():
            verify = str(cfg.ca_file)
        cert = None
        if cfg.cert_file and cfg.key_file:
            cert = (str(cfg.cert_file), str(cfg.key_file))
        return cls(cfg.server, token=token, verify=verify, cert=cert, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        close = getattr(self._session, "close", None)
        if callable(close):
            close()

    # Control plane operations
    ##########################

    def create_namespace(self, ctx: Optional[Context], name: str) -> Dict[str, Any]:
        return self._request(ctx, "POST", NAMESPACES_PATH, f"creating namespace {name}", body=namespace_manifest(name))

    def create_document(self, ctx: Optional[Context], document: StorageDocument) -> StorageDocument:
        body = document.to_dict()
        # the server assigns the version on create
        body["metadata"].pop("resourceVersion", None)
        res = self._request(
            ctx, "POST", documents_path(document.namespace),
            f"creating {document.namespace}/{document.name}", body=body,
        )
        return StorageDocument.from_dict(res)

    def get_document(self, ctx: Optional[Context], namespace: str, name: str) -> StorageDocument:
        res = self._request(ctx, "GET", documents_path(namespace, name), f"getting {namespace}/{name}")
        return StorageDocument.from_dict(res)

    def update_document(self, ctx: Optional[Context], document: StorageDocument) -> StorageDocument:
        res = self._request(
            ctx, "PUT", documents_path(document.namespace, document.name),
            f"updating {document.namespace}/{document.name}", body=document.to_dict(),
        )
        return StorageDocument.from_dict(res)

    def ensure_resource_type(self, ctx: Optional[Context], crd: Dict[str, Any]) -> None:
        name = crd_name(crd)
        try:
            self._request(ctx, "POST", CRDS_PATH, f"creating CRD {name}", body=crd)
            logger.info("Created CRD %s", name)
        except AlreadyExistsError:
            logger.debug("CRD %s already exists", name)

    # Transport
    ###########

    def _request(self, ctx: Optional[Context], method: str, path: str, operation: str, body: Optional[dict] = None) -> Dict[str, Any]:
        ctx = ensure_context(ctx)
        ctx.raise_if_done(operation)
        remaining = ctx.remaining()
        timeout = self.timeout if remaining is None else min(self.timeout, remaining)
        url = self.server + path
        logger.debug("%s %s", method, url)

        future = self._executor.submit(
            self._session.request,
            method,
            url,
            json=body,
            headers=self._headers,
            timeout=timeout,
            verify=self.verify,
            cert=self.cert,
        )
        # Wait for the response while watching the context; a cancelled
        # request is abandoned, the server either applied it or did not.
        while not future.done():
            if ctx.wait(POLL_INTERVAL):
                future.cancel()
                ctx.raise_if_done(operation)

        try:
            resp = future.result()
        except requests.Timeout as e:
            if ctx.expired:
                raise DeadlineExceededError(f"{operation}: context deadline exceeded") from e
            raise BackendError(f"{operation}: request timed out: {e}") from e
        except requests.RequestException as e:
            raise BackendError(f"{operation}: {e}") from e

        return self._decode(resp, operation)

    def _decode(self, resp: Any, operation: str) -> Dict[str, Any]:
        status = resp.status_code
        payload = self._json(resp)
        if status < 400:
            return payload
        reason = payload.get("reason", "") if isinstance(payload, dict) else ""
        message = payload.get("message") if isinstance(payload, dict) else None
        message = message or getattr(resp, "text", "") or f"HTTP {status}"
        detail = f"{operation}: {message}"
        if status == 404 or reason == "NotFound":
            raise NotFoundError(detail)
        if status == 409 and reason == "AlreadyExists":
            raise AlreadyExistsError(detail)
        if status == 409:
            raise ConflictError(detail)
        raise BackendError(detail, status_code=status)

    @staticmethod
    def _json(resp: Any) -> Dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
