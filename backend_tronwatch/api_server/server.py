"""
FastAPI server: query API and WebSocket rooms over the delegation pipeline.

The lifespan builds (or receives) the Container, binds the room hub to the
running event loop, and starts the scheduler and discovery threads; on
shutdown it stops them. Handlers only read; they never block on the jobs.

    uvicorn backend_tronwatch.api_server.server:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from backend_tronwatch import __version__
from backend_tronwatch.api_server.routes import router
from backend_tronwatch.runtime import Container, build_container
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)


async def _handle_ws_message(container: Container, websocket: WebSocket, message: Any) -> None:
    if not isinstance(message, dict):
        await websocket.send_json({"event": "error", "payload": {"detail": "expected an object"}})
        return
    action = message.get("action")
    room = message.get("room")
    if action not in ("subscribe", "unsubscribe") or not isinstance(room, str) or not room:
        await websocket.send_json({"event": "error", "payload": {"detail": "expected action and room"}})
        return
    if action == "subscribe":
        container.hub.subscribe(websocket, room)
    else:
        container.hub.unsubscribe(websocket, room)
    await websocket.send_json({"event": f"{action}d", "payload": {"room": room}})


def create_app(container: Container | None = None) -> FastAPI:
    """
    Build the app. With a container, routes work immediately (tests); without,
    the lifespan builds one from the environment on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = build_container()
        active: Container = app.state.container
        active.start(asyncio.get_running_loop())
        logger.info("api_started", version=__version__)
        try:
            yield
        finally:
            active.stop()
            if owned:
                active.db.dispose()
                app.state.container = None
            logger.info("api_stopped")

    app = FastAPI(
        title="Tronwatch API",
        description="TRON resource-delegation summaries, whale and pool activity.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container
    app.include_router(router)

    @app.websocket("/ws")
    async def rooms(websocket: WebSocket) -> None:
        """Room subscriptions: send {"action": "subscribe", "room": "pool-updates"}."""
        active: Container | None = websocket.app.state.container
        await websocket.accept()
        if active is None:
            await websocket.close(code=1013)
            return
        try:
            while True:
                message = await websocket.receive_json()
                await _handle_ws_message(active, websocket, message)
        except WebSocketDisconnect:
            pass
        finally:
            active.hub.disconnect(websocket)

    return app


app = create_app()
