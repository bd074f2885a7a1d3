"""
Фоновые задачи: рассылка LOBBY_STATS и смена суток для счётчика партий.
"""
import asyncio
import logging

from .lobby import Lobby
from .stats import lobby_stats_payload

logger = logging.getLogger(__name__)


def broadcast_stats_once(lobby: Lobby) -> int:
    """Разослать снимок статистики всем подключениям. Возвращает число адресатов."""
    snapshot = lobby.stats.snapshot(active_players=lobby.manager.count())
    return lobby.manager.broadcast(lobby_stats_payload(snapshot))


async def stats_broadcast_loop(lobby: Lobby, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            broadcast_stats_once(lobby)
        except Exception:
            logger.exception("Stats broadcast failed")


async def daily_reset_loop(lobby: Lobby, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            lobby.stats.roll_over()
        except Exception:
            logger.exception("Daily reset check failed")


def start_background_tasks(lobby: Lobby) -> list[asyncio.Task]:
    config = lobby.config
    return [
        asyncio.create_task(stats_broadcast_loop(lobby, config.stats_broadcast_seconds)),
        asyncio.create_task(daily_reset_loop(lobby, config.daily_reset_check_seconds)),
    ]


async def stop_background_tasks(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
