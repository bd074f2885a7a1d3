"""
Пейринг (in-memory): один слот ожидания на весь процесс.
Второй ищущий сразу получает партию с тем, кто ждёт.
"""
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .constants import BLACK, GAME_FOUND, MOCK_ELO, WHITE
from .game import GameTable, Match
from .stats import LobbyStats, round_half_up

logger = logging.getLogger(__name__)


@dataclass
class WaitingTicket:
    connection_id: str
    username: str
    started_at: float  # по часам матчмейкера (monotonic)


def display_name(connection_id: str, username: Any) -> str:
    if isinstance(username, str) and username.strip():
        return username.strip()
    return f"player_{connection_id[:6]}"


class Matchmaker:
    def __init__(
        self,
        games: GameTable,
        stats: LobbyStats,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lock = threading.Lock()
        self._waiting: WaitingTicket | None = None
        self._games = games
        self._stats = stats
        self._clock = clock

    @property
    def waiting(self) -> WaitingTicket | None:
        with self._lock:
            return self._waiting

    def request_match(self, connection_id: str, username: Any) -> Match | None:
        """
        Встать в слот ожидания или сразу создать партию, если кто-то ждёт.
        Возвращает Match если пара найдена, иначе None.
        Ждавший играет белыми, пришедший чёрными.
        """
        name = display_name(connection_id, username)
        m = None
        with self._lock:
            waiting = self._waiting
            if waiting is None:
                self._waiting = WaitingTicket(connection_id, name, self._clock())
            elif waiting.connection_id != connection_id:
                # Время ожидания считается только для того, кто ждал
                waited = round_half_up(self._clock() - waiting.started_at)
                self._stats.record_wait(waited)
                self._waiting = None
                m = self._games.create(waiting.connection_id, waiting.username, connection_id, name)
        if waiting is None:
            logger.info("Pairing: %s (%s) is waiting", name, connection_id)
        elif m is None:
            logger.info("Pairing: %s already waiting", name)
        else:
            logger.info(
                "Pairing: game %s, %s (white, waited %ss) vs %s (black)",
                m.id, m.white_username, waited, m.black_username,
            )
        return m

    def cancel(self, connection_id: str) -> bool:
        """Освободить слот, если его держит это соединение. True если освободили."""
        with self._lock:
            if self._waiting is None or self._waiting.connection_id != connection_id:
                return False
            self._waiting = None
        logger.info("Pairing: %s left the waiting slot", connection_id)
        return True


def game_found_payload(m: Match, side: str) -> dict[str, Any]:
    """Собрать GAME_FOUND для одной из сторон."""
    opponent_side = BLACK if side == WHITE else WHITE
    return {
        "type": GAME_FOUND,
        "gameId": m.id,
        "color": side,
        "opponent": m.username_of(opponent_side),
        "opponentElo": MOCK_ELO,
    }
