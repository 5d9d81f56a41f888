# Development server for the CRD store using the in-memory control plane
from crdstore_lib.config.config import ServerConfig
from crdstore_lib.main import create_app, Config
app = create_app(Config(server_config=ServerConfig(backend='memory', log_level='DEBUG')))
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
