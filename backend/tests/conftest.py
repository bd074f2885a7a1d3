"""Общие фикстуры тестов лобби."""
import asyncio
import time
from types import SimpleNamespace

import pytest

from chesslobby.game import GameTable
from chesslobby.lobby import Lobby
from chesslobby.pairing import Matchmaker
from chesslobby.stats import LobbyStats


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebSocket:
    """Пишет всё отправленное в список."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.client = ("test", 0)
        self.fail = fail

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)

    def types(self):
        return [p["type"] for p in self.sent]


def make_config(**overrides):
    values = {
        "stats_broadcast_seconds": 3600.0,
        "daily_reset_check_seconds": 3600.0,
        "wait_sample_capacity": 20,
        "outbox_size": 256,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


async def settle():
    """Дать задачам-отправителям выгрузить очереди."""
    await asyncio.sleep(0.01)


def wait_until(predicate, timeout: float = 2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(0.005)
    raise AssertionError("condition not reached in time")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stats():
    return LobbyStats(capacity=20, today="2026-01-01")


@pytest.fixture
def games(stats):
    return GameTable(stats)


@pytest.fixture
def matchmaker(games, stats, clock):
    return Matchmaker(games, stats, clock=clock)


@pytest.fixture
def lobby():
    return Lobby.from_config(make_config())
