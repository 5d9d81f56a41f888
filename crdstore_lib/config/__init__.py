from .config import BootConfig, KubernetesConfig, ServerConfig, load_config, parse_config

__all__ = ["BootConfig", "KubernetesConfig", "ServerConfig", "load_config", "parse_config"]
