"""ASGI entry point: `uvicorn api.app_factory:app`."""
from api.app import create_app

app = create_app()

__all__ = ["app", "create_app"]
