"""ASGI entrypoint for running the service."""
from __future__ import annotations

import uvicorn

from .config import get_settings


def run() -> None:
    """Convenience wrapper used by ``python -m expiry_service.main``."""

    settings = get_settings()
    uvicorn.run(
        "expiry_service.api:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
