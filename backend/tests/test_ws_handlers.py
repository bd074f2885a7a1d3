"""Тесты разбора сообщений клиента и реакции на отключение."""
import json

import pytest

from chesslobby.constants import BLACK, WHITE
from chesslobby.ws_handlers import handle_ws_message, release_connection
from conftest import FakeWebSocket, settle

FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


def send(lobby, conn, **msg):
    handle_ws_message(lobby, conn, json.dumps(msg))


@pytest.fixture
async def players(lobby):
    sockets = [FakeWebSocket() for _ in range(3)]
    conns = [lobby.manager.admit(ws) for ws in sockets]
    return list(zip(conns, sockets))


@pytest.fixture
async def paired(lobby, players):
    (a, a_ws), (b, b_ws), _ = players
    send(lobby, a, type="SEARCH_GAME", username="A")
    send(lobby, b, type="SEARCH_GAME", username="B")
    await settle()
    game_id = a_ws.sent[-1]["gameId"]
    a_ws.sent.clear()
    b_ws.sent.clear()
    return game_id


async def test_search_pairs_and_notifies_both(lobby, players):
    (a, a_ws), (b, b_ws), (c, c_ws) = players
    send(lobby, a, type="SEARCH_GAME", username="A")
    await settle()
    assert a_ws.sent == []

    send(lobby, b, type="SEARCH_GAME", username="B")
    await settle()

    found_a, = a_ws.sent
    found_b, = b_ws.sent
    assert found_a["type"] == found_b["type"] == "GAME_FOUND"
    assert found_a["color"] == WHITE and found_a["opponent"] == "B"
    assert found_b["color"] == BLACK and found_b["opponent"] == "A"
    assert found_a["gameId"] == found_b["gameId"]
    assert c_ws.sent == []


async def test_duplicate_search_ignored(lobby, players):
    (a, a_ws), _, _ = players
    send(lobby, a, type="SEARCH_GAME", username="A")
    send(lobby, a, type="SEARCH_GAME", username="A")
    await settle()

    assert lobby.matchmaker.waiting.connection_id == a.connection_id
    assert lobby.games.active_count() == 0
    assert a_ws.sent == []


async def test_cancel_search(lobby, players):
    (a, _), (b, b_ws), _ = players
    send(lobby, a, type="SEARCH_GAME", username="A")
    send(lobby, a, type="CANCEL_SEARCH")
    send(lobby, b, type="SEARCH_GAME", username="B")
    await settle()

    assert lobby.matchmaker.waiting.connection_id == b.connection_id
    assert b_ws.sent == []


async def test_move_relayed_to_opponent_only(lobby, players, paired):
    (a, a_ws), (b, b_ws), (c, c_ws) = players
    send(lobby, a, type="MAKE_MOVE", gameId=paired, move=FEN, nextTurn=BLACK, pgn="1. e4")
    await settle()

    assert b_ws.sent == [{"type": "OPPONENT_MOVE", "move": FEN, "nextTurn": BLACK, "pgn": "1. e4"}]
    assert a_ws.sent == []
    assert c_ws.sent == []


async def test_move_from_outsider_dropped(lobby, players, paired):
    (a, a_ws), (b, b_ws), (c, c_ws) = players
    send(lobby, c, type="MAKE_MOVE", gameId=paired, move=FEN, nextTurn=BLACK)
    await settle()

    assert a_ws.sent == b_ws.sent == c_ws.sent == []


async def test_game_over_relayed_and_counted_once(lobby, players, paired):
    (a, a_ws), (b, b_ws), _ = players
    send(lobby, a, type="GAME_OVER", gameId=paired, winner=BLACK)
    send(lobby, a, type="GAME_OVER", gameId=paired, winner=BLACK)
    await settle()

    assert b_ws.sent == [{"type": "GAME_OVER", "gameId": paired, "winner": BLACK}]
    assert a_ws.sent == []
    assert lobby.stats.games_completed_today == 1


async def test_ending_old_game_keeps_newer_one(lobby, players, paired):
    (a, a_ws), (b, b_ws), (c, c_ws) = players
    send(lobby, c, type="SEARCH_GAME", username="C")
    send(lobby, a, type="SEARCH_GAME", username="A")
    await settle()
    second = a_ws.sent[-1]["gameId"]
    c_ws.sent.clear()

    send(lobby, b, type="GAME_OVER", gameId=paired, winner=WHITE)
    send(lobby, a, type="MAKE_MOVE", gameId=second, move=FEN, nextTurn=WHITE)
    await settle()

    assert lobby.games.get(paired) is None
    assert lobby.games.get(second) is not None
    assert c_ws.sent == [{"type": "OPPONENT_MOVE", "move": FEN, "nextTurn": WHITE}]

    release_connection(lobby, a.connection_id)
    await settle()
    assert c_ws.sent[-1]["gameId"] == second
    assert c_ws.sent[-1]["reason"] == "opponent_disconnected"


async def test_disconnect_mid_game_notifies_opponent(lobby, players, paired):
    (a, a_ws), (b, b_ws), _ = players
    release_connection(lobby, a.connection_id)
    await settle()

    assert b_ws.sent == [{
        "type": "GAME_OVER",
        "gameId": paired,
        "winner": BLACK,
        "reason": "opponent_disconnected",
    }]
    assert lobby.manager.count() == 2
    assert lobby.stats.games_completed_today == 0

    send(lobby, b, type="MAKE_MOVE", gameId=paired, move=FEN, nextTurn=WHITE)
    await settle()
    assert len(b_ws.sent) == 1


async def test_disconnect_while_waiting_clears_slot(lobby, players):
    (a, _), (b, b_ws), _ = players
    send(lobby, a, type="SEARCH_GAME", username="A")
    release_connection(lobby, a.connection_id)

    assert lobby.matchmaker.waiting is None
    send(lobby, b, type="SEARCH_GAME", username="B")
    await settle()
    assert b_ws.sent == []
    assert lobby.matchmaker.waiting.connection_id == b.connection_id


async def test_release_unknown_connection_is_noop(lobby, players):
    release_connection(lobby, "missing")
    assert lobby.manager.count() == 3


async def test_bad_game_id_dropped(lobby, players, paired):
    (a, a_ws), (b, b_ws), _ = players
    send(lobby, a, type="MAKE_MOVE", gameId=[paired], move=FEN, nextTurn=BLACK)
    send(lobby, a, type="GAME_OVER", gameId={"id": paired}, winner=BLACK)
    await settle()

    assert a_ws.sent == b_ws.sent == []
    assert lobby.games.get(paired) is not None


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"type": "HACK"}', '{"type": 5}', '{"no": "type"}'])
async def test_garbage_ignored(lobby, players, raw):
    (a, a_ws), _, _ = players
    handle_ws_message(lobby, a, raw)
    await settle()

    assert a_ws.sent == []
    assert lobby.matchmaker.waiting is None
