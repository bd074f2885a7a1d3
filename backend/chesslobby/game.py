"""
Партии (in-memory): ретрансляция ходов и финала между двумя участниками.
Правила шахмат проверяет клиент, сервер передаёт данные как есть.
"""
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    BLACK,
    GAME_OVER,
    OPPONENT_MOVE,
    REASON_OPPONENT_DISCONNECTED,
    REASON_REPORTED,
    WHITE,
    WINNERS,
)
from .stats import LobbyStats

logger = logging.getLogger(__name__)

# (connection_id получателя, payload)
Delivery = tuple[str, dict[str, Any]]


def new_match_id() -> str:
    return f"game_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@dataclass
class Match:
    white_id: str
    black_id: str
    white_username: str
    black_username: str
    id: str = field(default_factory=new_match_id)
    created_at: float = field(default_factory=time.time)
    result: str | None = None  # None | "white" | "black" | "draw"
    reason: str | None = None

    @property
    def participants(self) -> tuple[str, str]:
        return (self.white_id, self.black_id)

    @property
    def is_terminal(self) -> bool:
        return self.result is not None

    def side_of(self, connection_id: str) -> str | None:
        if connection_id == self.white_id:
            return WHITE
        if connection_id == self.black_id:
            return BLACK
        return None

    def opponent_of(self, connection_id: str) -> str | None:
        if connection_id == self.white_id:
            return self.black_id
        if connection_id == self.black_id:
            return self.white_id
        return None

    def username_of(self, side: str) -> str:
        return self.white_username if side == WHITE else self.black_username


class GameTable:
    """Таблица активных партий. Завершённые партии сразу удаляются из таблицы."""

    def __init__(self, stats: LobbyStats):
        self._lock = threading.Lock()
        self._matches: dict[str, Match] = {}
        self._stats = stats

    def create(self, white_id: str, white_username: str, black_id: str, black_username: str) -> Match:
        m = Match(
            white_id=white_id,
            black_id=black_id,
            white_username=white_username,
            black_username=black_username,
        )
        with self._lock:
            self._matches[m.id] = m
        return m

    def get(self, match_id: str) -> Match | None:
        with self._lock:
            return self._matches.get(match_id)

    def active_count(self) -> int:
        with self._lock:
            return len(self._matches)

    def relay_move(
        self,
        match_id: str,
        from_id: str,
        move: Any,
        next_turn: Any,
        pgn: Any = None,
    ) -> Delivery | None:
        """
        Переслать ход сопернику. None если партия неизвестна, завершена
        или отправитель не участник: такое сообщение просто отбрасывается.
        """
        if move is None:
            return None
        with self._lock:
            m = self._matches.get(match_id)
            opponent = m.opponent_of(from_id) if m and not m.is_terminal else None
        if opponent is None:
            logger.debug("Game: dropped move for %s from %s", match_id, from_id)
            return None
        payload: dict[str, Any] = {"type": OPPONENT_MOVE, "move": move, "nextTurn": next_turn}
        if pgn is not None:
            payload["pgn"] = pgn
        return opponent, payload

    def report_game_over(self, match_id: str, from_id: str, winner: Any) -> Delivery | None:
        """
        Завершить партию и переслать итог сопернику.
        Счётчик партий за день увеличивается ровно один раз на партию.
        """
        if winner not in WINNERS:
            logger.debug("Game: dropped game over for %s, bad winner %r", match_id, winner)
            return None
        with self._lock:
            m = self._matches.get(match_id)
            opponent = m.opponent_of(from_id) if m and not m.is_terminal else None
            if opponent is not None:
                m.result = winner
                m.reason = REASON_REPORTED
                del self._matches[match_id]
                self._stats.record_completed()
        if opponent is None:
            logger.debug("Game: dropped game over for %s from %s", match_id, from_id)
            return None
        logger.info("Game %s over: winner=%s", match_id, winner)
        return opponent, {"type": GAME_OVER, "gameId": match_id, "winner": winner}

    def abandon(self, connection_id: str) -> list[Delivery]:
        """
        Соединение ушло: все его активные партии завершаются победой
        оставшейся стороны. В счётчик партий за день не попадают.
        """
        deliveries: list[Delivery] = []
        with self._lock:
            abandoned = [m for m in self._matches.values() if connection_id in m.participants]
            for m in abandoned:
                opponent = m.opponent_of(connection_id)
                m.result = m.side_of(opponent)
                m.reason = REASON_OPPONENT_DISCONNECTED
                del self._matches[m.id]
                deliveries.append((opponent, {
                    "type": GAME_OVER,
                    "gameId": m.id,
                    "winner": m.result,
                    "reason": REASON_OPPONENT_DISCONNECTED,
                }))
        for m in abandoned:
            logger.info("Game %s over: %s disconnected, winner=%s", m.id, connection_id, m.result)
        return deliveries
