import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.routers import games, ws
from app.services.room import RoomRegistry
from app.services.websocket import ConnectionManager, build_room_listener

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Minesweeper Party API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    # One registry, connection manager and rate limiter per process
    connection_manager = ConnectionManager(settings)
    registry = RoomRegistry(settings)
    registry.set_listener(build_room_listener(connection_manager))
    app.state.connection_manager = connection_manager
    app.state.registry = registry
    app.state.rate_limiter = ws.RateLimiter()

    await connection_manager.start_cleanup_task()
    logger.info("WebSocket connection manager and room registry initialized")

    yield

    # Shutdown: stop cleanup task, close all connections, cancel room timers
    logger.info("Shutting down Minesweeper Party API")
    await connection_manager.stop_cleanup_task()
    await connection_manager.close_all_connections()
    await registry.shutdown()
    logger.info("WebSocket and room registry cleanup complete")


app = FastAPI(
    title="Minesweeper Party API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(games.router, prefix="/api/v1")
app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/games, /api/v1/ws")


@app.get("/")
def root():
    return {"message": "Minesweeper Party API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
