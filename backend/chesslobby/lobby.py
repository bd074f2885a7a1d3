"""Всё изменяемое состояние сервиса в одном контейнере."""
from dataclasses import dataclass, field
from typing import Any

from .game import GameTable
from .pairing import Matchmaker
from .stats import LobbyStats
from .ws_manager import WSManager


@dataclass
class Lobby:
    config: Any
    stats: LobbyStats
    games: GameTable
    matchmaker: Matchmaker
    manager: WSManager = field(default_factory=WSManager)

    @classmethod
    def from_config(cls, config: Any) -> "Lobby":
        stats = LobbyStats(capacity=config.wait_sample_capacity)
        games = GameTable(stats)
        return cls(
            config=config,
            stats=stats,
            games=games,
            matchmaker=Matchmaker(games, stats),
            manager=WSManager(outbox_size=config.outbox_size),
        )
