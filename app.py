from contextlib import asynccontextmanager
import os

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from backend import RedisBackend
from constants import CORS_ORIGINS
from logging_config import get_logger, setup_logging
from realtime.connection import Connection
from realtime.coordinator import RoomCoordinator
from routers.rooms import rooms_router

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


def create_app(store=None) -> FastAPI:
    """Build the application. ``store`` defaults to a RedisBackend made at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        backend = store
        owns_store = backend is None
        if owns_store:
            backend = RedisBackend()
            # Live rooms keep working without Redis, only the stroke log is lost
            await backend.ping()
        coordinator = RoomCoordinator(backend)
        coordinator.start()
        app.state.store = backend
        app.state.coordinator = coordinator
        logger.info("FastAPI application started")
        try:
            yield
        finally:
            await coordinator.shutdown()
            if owns_store:
                await backend.close()
            logger.info("FastAPI application stopped")

    app = FastAPI(title="Collab Rooms", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.get("/health")
    async def health():
        coordinator = app.state.coordinator
        return {"status": "ok", "live_rooms": coordinator.registry.room_count}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """One persistent connection per participant.

        The caller is expected to be authenticated upstream; the identity in
        ``join-room`` is taken as given.
        """
        coordinator: RoomCoordinator = websocket.app.state.coordinator
        await websocket.accept()
        connection = Connection(websocket)
        logger.info(f"WebSocket connection accepted: {connection.id}")
        coordinator.connect(connection)

        message_count = 0
        try:
            while True:
                data = await websocket.receive_text()
                message_count += 1
                logger.debug(f"Received message #{message_count} from connection {connection.id}")
                coordinator.handle_text(connection, data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected normally for connection {connection.id}")
        except Exception as e:
            logger.error(f"Error receiving message from connection {connection.id}: {e}", exc_info=True)
        finally:
            coordinator.disconnect(connection)
            await connection.close()
            try:
                await websocket.close()
            except Exception as e:
                # Usually already closed by the client
                logger.debug(f"Error closing WebSocket: {e}")

    return app


app = create_app()
