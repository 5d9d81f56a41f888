"""Application factory for the CRD store FastAPI app.

This module exposes `create_app(config: Config) -> FastAPI` which performs
all setup (logging, config loading, control plane and storage
composition, middleware and router registration). Nothing happens at
import time so tests can construct isolated apps.

    from crdstore_lib.main import create_app, Config
    app = create_app(Config())

The storage is booted when the application starts up; requests arriving
before boot completes are answered with 503.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from crdstore_lib.config.config import ServerConfig, load_config
from crdstore_lib.context import Context
from crdstore_lib.errors import StorageError
from crdstore_lib.kube.crd import storage_config_crd
from crdstore_lib.kube.interfaces import ControlPlaneProtocol
from crdstore_lib.logging_config import configure_logging
from crdstore_lib.retry import BackoffPolicy, retry
from crdstore_lib.storage import CRDStorage, StoreConfig


@dataclass
class Config:
    config_file: Optional[str] = None
    # Takes precedence over config_file when given
    server_config: Optional[ServerConfig] = None
    # Injected control plane, e.g. a MemoryControlPlane shared with a test
    control_plane: Optional[ControlPlaneProtocol] = None
    # If None, use the `use_brotli` feature flag
    enable_brotli: Optional[bool] = None
    boot_on_startup: bool = True


def create_control_plane(server_cfg: ServerConfig) -> ControlPlaneProtocol:
    if server_cfg.backend == "memory":
        from crdstore_lib.kube.memory_client import MemoryControlPlane
        return MemoryControlPlane()
    from crdstore_lib.kube.client import KubeClient
    return KubeClient.from_config(server_cfg.kubernetes, timeout=server_cfg.request_timeout_seconds)


def boot_storage(storage: CRDStorage, client: ControlPlaneProtocol, server_cfg: ServerConfig, ctx: Optional[Context] = None) -> None:
    """Register the resource type if configured to, then boot the storage."""
    backoff = BackoffPolicy(max_tries=server_cfg.boot.max_tries)
    if server_cfg.boot.ensure_crd:
        crd = storage_config_crd()
        retry(lambda: client.ensure_resource_type(ctx, crd), backoff, ctx, name="ensuring StorageConfig CRD")
    storage.boot(ctx)


def create_app(config: Config) -> FastAPI:
    """Create and return a configured FastAPI application."""
    server_cfg = config.server_config or load_config(Path(config.config_file) if config.config_file else None)
    logger = configure_logging(level=server_cfg.log_level)

    client = config.control_plane or create_control_plane(server_cfg)
    storage = CRDStorage(StoreConfig(
        client=client,
        name=server_cfg.name,
        namespace=server_cfg.namespace,
        backoff=BackoffPolicy(max_tries=server_cfg.boot.max_tries),
    ))
    logger.info("Serving %r via %s backend", storage, server_cfg.backend)

    from crdstore_lib.services import ServiceContainer
    container = ServiceContainer()
    container.register_singleton("server_config", server_cfg)
    container.register_singleton("control_plane", client)
    container.register_singleton("storage", storage)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            if config.boot_on_startup:
                try:
                    await run_in_threadpool(boot_storage, storage, client, server_cfg)
                except StorageError:
                    logger.exception("Failed to boot %r", storage)
                    raise
                app.state.booted = True
            yield
        finally:
            close = getattr(client, "close", None)
            if callable(close):
                close()

    app = FastAPI(title="CRD Store Server", lifespan=lifespan)
    app.state.container = container
    app.state.booted = False

    enable_brotli = config.enable_brotli if config.enable_brotli is not None else server_cfg.has_feature_flag('use_brotli')
    if enable_brotli:
        logger.info("Brotli compression middleware is enabled")
        from crdstore_lib.middleware import BrotliCompression
        app.add_middleware(BrotliCompression)

    from crdstore_lib.server.errors import storage_error_handler
    app.add_exception_handler(StorageError, storage_error_handler)

    # Router registration: import here to avoid import-time side-effects
    from crdstore_lib.server.api import router as kv_router
    app.include_router(kv_router, prefix='/api')

    return app
