"""Main FastAPI application with the signaling WebSocket endpoint."""

import json
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from sse_starlette.sse import EventSourceResponse

from peerlink import __version__
from peerlink.config import Settings, get_settings
from peerlink.core.lifecycle import ConnectionLifecycleHandler
from peerlink.core.moderation import ModerationLog
from peerlink.core.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the signaling application.

    Each application owns exactly one lifecycle handler, and with it the only
    registry and waiting pool its sockets will ever share.

    Args:
        settings: Configuration to use; defaults to the environment

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(title="Peerlink Signaling Server", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    moderation = ModerationLog(history_size=settings.report_history_size)
    lifecycle = ConnectionLifecycleHandler(
        moderation=moderation,
        notify_reported_peer=settings.notify_reported_peer
    )
    websocket_manager = WebSocketManager(lifecycle)

    app.state.settings = settings
    app.state.lifecycle = lifecycle
    app.state.moderation = moderation

    @app.get("/")
    async def root():
        """Root endpoint returning API information."""
        return {
            "message": "Peerlink Signaling Server",
            "version": __version__,
            "endpoints": {
                "websocket": "/ws",
                "health": "/health",
                "clients": "/clients",
                "reports": "/reports",
                "report_stream": "/reports/stream"
            }
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "consistent": not lifecycle.engine.check_invariants(),
            **lifecycle.stats()
        }

    @app.get("/clients")
    async def list_clients():
        """Connected clients with their pairing state, oldest first."""
        return {"clients": [client.to_dict() for client in lifecycle.registry.clients()]}

    @app.get("/reports")
    async def list_reports():
        """Recorded moderation reports, oldest first."""
        return {"reports": [report.to_dict() for report in moderation.reports()]}

    @app.get("/reports/stream")
    async def stream_reports(request: Request):
        """Server-Sent Events feed of new reports."""
        async def event_generator():
            async for report in moderation.subscribe():
                if await request.is_disconnected():
                    break
                yield {"event": "report", "data": json.dumps(report.to_dict())}

        return EventSourceResponse(event_generator())

    @app.websocket("/")
    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Signaling WebSocket: pairs the caller and relays negotiation messages."""
        await websocket_manager.serve(websocket)

    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Signaling server starting on {settings.host}:{settings.port}")
    uvicorn.run(
        "peerlink.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower()
    )


app = create_app()


if __name__ == "__main__":
    run()
