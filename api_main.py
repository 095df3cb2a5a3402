"""ASGI entry point: `uvicorn api_main:app --reload`."""

from app.api.fastapi_app import app

__all__ = ["app"]
