"""Server configuration loaded from YAML.

The configuration file defaults to `data/config/crdstore.yml` and can be
pointed elsewhere with the `CRDSTORE_CONFIG` environment variable. When
running inside a cluster the Kubernetes server address and service
account credentials are picked up automatically.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os

import yaml

from crdstore_lib.errors import InvalidConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("data/config/crdstore.yml")
SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
BACKENDS = ("kubernetes", "memory")


def _in_cluster_server() -> Optional[str]:
    host = os.environ.get("KUBERNETES_SERVICE_HOST")
    port = os.environ.get("KUBERNETES_SERVICE_PORT", "443")
    if not host:
        return None
    if ":" in host:
        host = f"[{host}]"
    return f"https://{host}:{port}"


@dataclass
class KubernetesConfig:
    server: Optional[str] = None
    token: Optional[str] = None
    token_file: Optional[str] = str(SERVICE_ACCOUNT_DIR / "token")
    ca_file: Optional[str] = str(SERVICE_ACCOUNT_DIR / "ca.crt")
    insecure_skip_tls_verify: bool = False
    cert_file: Optional[str] = None
    key_file: Optional[str] = None


@dataclass
class BootConfig:
    max_tries: int = 7
    ensure_crd: bool = False


@dataclass
class ServerConfig:
    name: str = "crdstore"
    namespace: str = "crdstore"
    backend: str = "kubernetes"
    log_level: str = "WARNING"
    request_timeout_seconds: float = 10.0
    boot: BootConfig = field(default_factory=BootConfig)
    kubernetes: KubernetesConfig = field(default_factory=KubernetesConfig)
    feature_flags: Dict[str, Any] = field(default_factory=dict)

    def has_feature_flag(self, flag: str) -> bool:
        return bool(self.feature_flags.get(flag))

    def to_dict(self) -> Dict[str, Any]:
        """Return the YAML-shaped representation of this configuration."""
        return {
            "log_level": self.log_level,
            "backend": self.backend,
            "storage": {"name": self.name, "namespace": self.namespace},
            "request_timeout_seconds": self.request_timeout_seconds,
            "boot": asdict(self.boot),
            "kubernetes": asdict(self.kubernetes),
            "feature_flags": dict(self.feature_flags),
        }


def parse_config(data: Any) -> ServerConfig:
    """Build a validated `ServerConfig` from a parsed YAML mapping."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("invalid config format: expected mapping")

    storage = data.get("storage") or {}
    boot = data.get("boot") or {}
    kube = data.get("kubernetes") or {}
    flags = data.get("feature_flags") or {}
    for section, value in (("storage", storage), ("boot", boot), ("kubernetes", kube), ("feature_flags", flags)):
        if not isinstance(value, dict):
            raise ValueError(f"invalid config format: '{section}' must be a mapping")

    try:
        cfg = ServerConfig(
            name=str(storage.get("name", ServerConfig.name)),
            namespace=str(storage.get("namespace", ServerConfig.namespace)),
            backend=str(data.get("backend", ServerConfig.backend)).lower(),
            log_level=str(data.get("log_level", ServerConfig.log_level)).upper(),
            request_timeout_seconds=float(data.get("request_timeout_seconds", ServerConfig.request_timeout_seconds)),
            boot=BootConfig(
                max_tries=int(boot.get("max_tries", BootConfig.max_tries)),
                ensure_crd=bool(boot.get("ensure_crd", BootConfig.ensure_crd)),
            ),
            kubernetes=KubernetesConfig(**{k: v for k, v in kube.items() if k in KubernetesConfig.__dataclass_fields__}),
            feature_flags=dict(flags),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid config format: {e}") from e

    if not cfg.kubernetes.server:
        cfg.kubernetes.server = _in_cluster_server()
    validate_config(cfg)
    return cfg


def validate_config(cfg: ServerConfig) -> None:
    if not cfg.name:
        raise InvalidConfigError("storage.name must not be empty")
    if not cfg.namespace:
        raise InvalidConfigError("storage.namespace must not be empty")
    if cfg.backend not in BACKENDS:
        raise InvalidConfigError(f"backend must be one of {', '.join(BACKENDS)}, got {cfg.backend!r}")
    if cfg.boot.max_tries < 1:
        raise InvalidConfigError("boot.max_tries must be at least 1")
    if cfg.request_timeout_seconds <= 0:
        raise InvalidConfigError("request_timeout_seconds must be positive")
    if cfg.backend == "kubernetes" and not cfg.kubernetes.server:
        raise InvalidConfigError("kubernetes.server must not be empty outside of a cluster")


def config_path() -> Path:
    return Path(os.environ.get("CRDSTORE_CONFIG") or DEFAULT_CONFIG_PATH)


def load_config(path: Optional[Path] = None) -> ServerConfig:
    """Load and validate the configuration file.

    A missing file yields the defaults (which still need a reachable
    Kubernetes server unless the memory backend is selected).
    """
    cfg_path = Path(path) if path is not None else config_path()
    if not cfg_path.exists():
        logger.info("No configuration at %s; using defaults", cfg_path)
        return parse_config({})
    with cfg_path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError("invalid config format: parse error") from e
    logger.debug("Loaded configuration from %s", cfg_path)
    return parse_config(data)
