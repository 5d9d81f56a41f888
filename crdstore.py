"""Production entrypoint for the CRD store server.

    python3 crdstore.py --config data/config/crdstore.yml
    python3 crdstore.py --print-template > data/config/crdstore.yml
"""
import os
import sys

from crdstore_lib.setup import get_loaded_config, get_parser, parse_args, setup
from crdstore_lib.main import Config, create_app

_setup_args = parse_args(sys.argv[1:])
if _setup_args.help:
    get_parser().print_help()
    sys.exit(0)

rc = setup(sys.argv[1:])
if rc != 0 or _setup_args.print_template:
    sys.exit(rc)

app = create_app(Config(server_config=get_loaded_config()))

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=os.environ.get("CRDSTORE_HOST", "0.0.0.0"), port=int(os.environ.get("CRDSTORE_PORT", "8000")))
