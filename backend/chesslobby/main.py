"""
Лобби: API и WebSocket.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .lobby import Lobby
from .scheduler import start_background_tasks, stop_background_tasks
from .ws_handlers import ws_session

config = get_config()

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    lobby: Lobby = app.state.lobby
    tasks = start_background_tasks(lobby)
    logger.info(
        "Lobby started: stats every %ss, daily reset check every %ss",
        lobby.config.stats_broadcast_seconds,
        lobby.config.daily_reset_check_seconds,
    )
    try:
        yield
    finally:
        await stop_background_tasks(tasks)
        logger.info("Lobby stopped")


app = FastAPI(title="Chess Lobby", lifespan=lifespan)
app.state.lobby = Lobby.from_config(config)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/stats")
def stats(request: Request):
    lobby: Lobby = request.app.state.lobby
    return lobby.stats.snapshot(active_players=lobby.manager.count())


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    logger.info("WS: connection attempt from %s", ws.client)
    await ws_session(ws, ws.app.state.lobby)
