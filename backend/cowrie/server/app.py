from pathlib import Path

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route, WebSocketRoute
from starlette.staticfiles import StaticFiles
from starlette.websockets import WebSocket

from cowrie.messaging.router import MessageRouter
from cowrie.server.settings import CowrieServerSettings
from cowrie.server.websocket import websocket_endpoint
from cowrie.session.manager import SessionManager
from shared.logging import setup_logging

logger = structlog.get_logger()


async def health(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    metrics = session_manager.metrics
    return JSONResponse(
        {
            "status": "ok",
            "startedAt": metrics.started_at.isoformat(),
            "uptime": metrics.uptime_seconds,
        },
    )


async def metrics(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(session_manager.metrics_snapshot().model_dump(by_alias=True))


def create_app(
    settings: CowrieServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = CowrieServerSettings()

    if session_manager is None:
        session_manager = SessionManager()

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, max_message_bytes=settings.max_message_bytes)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/metrics", metrics, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        routes.append(Mount("/", app=StaticFiles(directory=static_dir, html=True), name="static"))
    else:
        logger.info("static directory not found, not serving assets", static_dir=str(static_dir))

    app = Starlette(routes=routes)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("cowrie server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory)."""
    settings = CowrieServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
