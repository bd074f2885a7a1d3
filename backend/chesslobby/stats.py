"""
Статистика лобби: скользящее окно времени ожидания и счётчик партий за день.
"""
import logging
import math
import threading
from collections import deque
from datetime import date
from typing import Any

from .constants import LOBBY_STATS, LobbySnapshot

logger = logging.getLogger(__name__)


def local_today() -> str:
    return date.today().isoformat()


def round_half_up(value: float) -> int:
    """Округление как у Math.round в JS: 2.5 -> 3. Встроенный round() банковский."""
    return math.floor(value + 0.5)


class LobbyStats:
    """
    Последние `capacity` замеров ожидания (секунды) и число завершённых
    партий с последней смены локальной даты.
    """

    def __init__(self, capacity: int = 20, today: str | None = None):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._lock = threading.Lock()
        self._wait_samples: deque[int] = deque(maxlen=capacity)
        self.games_completed_today = 0
        self.counter_date = today or local_today()

    @property
    def capacity(self) -> int:
        return self._wait_samples.maxlen

    def record_wait(self, seconds: int) -> None:
        with self._lock:
            # deque с maxlen сам вытесняет самый старый замер
            self._wait_samples.append(seconds)

    def record_completed(self) -> None:
        with self._lock:
            self.games_completed_today += 1

    def wait_samples(self) -> list[int]:
        with self._lock:
            return list(self._wait_samples)

    def average_wait_seconds(self) -> int:
        with self._lock:
            return self._average_locked()

    def _average_locked(self) -> int:
        if not self._wait_samples:
            return 0
        mean = sum(self._wait_samples) / len(self._wait_samples)
        return round_half_up(mean)

    def snapshot(self, active_players: int) -> LobbySnapshot:
        with self._lock:
            return {
                "activePlayers": active_players,
                "gamesCompletedToday": self.games_completed_today,
                "avgWaitTime": self._average_locked(),
            }

    def roll_over(self, today: str | None = None) -> bool:
        """Обнулить счётчик, если локальная дата сменилась. True если обнулили."""
        today = today or local_today()
        with self._lock:
            if today == self.counter_date:
                return False
            previous = self.games_completed_today
            self.games_completed_today = 0
            self.counter_date = today
        logger.info("Stats: daily rollover to %s (%s games yesterday)", today, previous)
        return True


def lobby_stats_payload(snapshot: LobbySnapshot) -> dict[str, Any]:
    return {"type": LOBBY_STATS, **snapshot}
