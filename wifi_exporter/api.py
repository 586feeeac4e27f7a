from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from wifi_exporter.metrics import CONTENT_TYPE, render
from wifi_exporter.models import DeviceRegistry


def create_app(registry: DeviceRegistry) -> FastAPI:
    """Build the scrape application serving ``registry`` on ``/metrics``."""
    app = FastAPI(title="wifi-exporter", version="0.1.0", docs_url=None, redoc_url=None, openapi_url=None)

    # sync handler: FastAPI runs it in the threadpool, so the lock never blocks the event loop
    @app.get("/metrics", response_class=PlainTextResponse)
    def metrics() -> PlainTextResponse:
        with registry.locked() as states:
            body = render(states)
        return PlainTextResponse(body, media_type=CONTENT_TYPE)

    return app


__all__ = ["create_app"]
