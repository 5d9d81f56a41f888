"""Server setup helper for the CRD store.

Provides CLI parsing for the entrypoint and helpers to create a
configuration template. The module only contains CLI and file I/O logic;
everything storage related is composed in `crdstore_lib.main`.
"""
from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import Iterable, Optional
import yaml

from crdstore_lib.config.config import KubernetesConfig, ServerConfig, config_path, load_config

# Module-level place to hold the loaded ServerConfig instance after setup
_loaded_config: list[ServerConfig] = []


def get_loaded_config() -> Optional[ServerConfig]:
    """Return the loaded ServerConfig if available, otherwise None."""
    return _loaded_config[0] if _loaded_config else None


def get_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(add_help=False)
    p.add_argument("--config", default=None, help="Path to the YAML configuration file")
    p.add_argument("--print-template", action="store_true", help="Print the default YAML template to stdout and exit")
    p.add_argument("--write-template", action="store_true", help="Write the default YAML template to the config path if missing")
    p.add_argument("--help", action="store_true", help="Show setup help")
    return p


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    """Parse setup-related args from argv.

    Returns a Namespace with attributes: config, print_template,
    write_template, help. Unknown arguments (e.g. uvicorn flags) are ignored.
    """
    parser = get_parser()
    if argv is not None:
        argv = list(argv)
    args, _ = parser.parse_known_args(argv)
    return args


def template_config() -> ServerConfig:
    return ServerConfig(
        log_level="INFO",
        kubernetes=KubernetesConfig(server="https://127.0.0.1:6443"),
        feature_flags={"use_brotli": False},
    )


def render_template() -> str:
    return yaml.safe_dump(template_config().to_dict(), sort_keys=False)


def create_template(path: Path) -> tuple[bool, str]:
    if path.exists():
        return False, f"Configuration already exists at {path}"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_template(), encoding="utf-8")
    return True, f"Wrote template configuration to {path}"


def setup(argv: Optional[Iterable[str]]) -> int:
    """High-level helper used by the application entrypoint.

    - `--print-template` writes the template to stdout and returns 0.
    - `--write-template` creates the template file when missing.
    - Otherwise the configuration is loaded and validated into module
      state. Returns non-zero when it is missing or invalid.
    """
    args = parse_args(argv)
    path = Path(args.config) if args.config else config_path()

    if args.print_template:
        sys.stdout.write(render_template())
        return 0

    if args.write_template:
        created, message = create_template(path)
        print(message)
        if not created:
            return 1

    if not path.exists():
        print(f"Server configuration missing. Run: `python3 crdstore.py --write-template --config {path}` to create it.")
        return 2

    try:
        cfg = load_config(path)
    except ValueError as e:
        print("Invalid server configuration:", e)
        return 1
    _loaded_config.clear()
    _loaded_config.append(cfg)
    return 0
