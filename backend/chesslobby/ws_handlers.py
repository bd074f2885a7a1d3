"""
Обработка сообщений WebSocket: SEARCH_GAME, CANCEL_SEARCH, MAKE_MOVE, GAME_OVER.
При матче создаётся партия и обоим игрокам уходит GAME_FOUND.
Сообщения с чужой или неизвестной партией молча отбрасываются.
"""
import json
import logging
from collections.abc import Callable, Iterable
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .constants import BLACK, CANCEL_SEARCH, GAME_OVER, MAKE_MOVE, SEARCH_GAME, WHITE
from .game import Delivery
from .lobby import Lobby
from .pairing import game_found_payload
from .stats import lobby_stats_payload
from .ws_manager import Connection

logger = logging.getLogger(__name__)

Handler = Callable[[Lobby, Connection, dict[str, Any]], None]


def _deliver(lobby: Lobby, deliveries: Iterable[Delivery]) -> None:
    for cid, payload in deliveries:
        lobby.manager.send_to(cid, payload)


def on_search_game(lobby: Lobby, conn: Connection, data: dict[str, Any]) -> None:
    m = lobby.matchmaker.request_match(conn.connection_id, data.get("username"))
    if not m:
        return
    lobby.manager.send_to(m.white_id, game_found_payload(m, WHITE))
    lobby.manager.send_to(m.black_id, game_found_payload(m, BLACK))


def on_cancel_search(lobby: Lobby, conn: Connection, data: dict[str, Any]) -> None:
    lobby.matchmaker.cancel(conn.connection_id)


def on_make_move(lobby: Lobby, conn: Connection, data: dict[str, Any]) -> None:
    game_id = data.get("gameId")
    if not isinstance(game_id, str):
        return
    delivery = lobby.games.relay_move(
        game_id,
        conn.connection_id,
        data.get("move"),
        data.get("nextTurn"),
        data.get("pgn"),
    )
    if delivery:
        lobby.manager.send_to(*delivery)


def on_game_over(lobby: Lobby, conn: Connection, data: dict[str, Any]) -> None:
    game_id = data.get("gameId")
    if not isinstance(game_id, str):
        return
    delivery = lobby.games.report_game_over(game_id, conn.connection_id, data.get("winner"))
    if delivery:
        lobby.manager.send_to(*delivery)


HANDLERS: dict[str, Handler] = {
    SEARCH_GAME: on_search_game,
    CANCEL_SEARCH: on_cancel_search,
    MAKE_MOVE: on_make_move,
    GAME_OVER: on_game_over,
}


def handle_ws_message(lobby: Lobby, conn: Connection, raw: str) -> None:
    """Обрабатывает одно сообщение клиента. Ошибки протокола не закрывают соединение."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON from %s: %s", conn.connection_id, e)
        return
    if not isinstance(data, dict):
        logger.warning("WS: non-object message from %s", conn.connection_id)
        return
    t = data.get("type")
    handler = HANDLERS.get(t) if isinstance(t, str) else None
    if handler is None:
        logger.warning("WS: unknown message type=%r from %s", t, conn.connection_id)
        return
    logger.info("WS: msg from %s type=%s", conn.connection_id, t)
    handler(lobby, conn, data)


def release_connection(lobby: Lobby, connection_id: str) -> None:
    """Освободить слот ожидания и партии ушедшего клиента, затем убрать его из реестра."""
    lobby.matchmaker.cancel(connection_id)
    _deliver(lobby, lobby.games.abandon(connection_id))
    lobby.manager.remove(connection_id)


async def ws_session(ws: WebSocket, lobby: Lobby) -> None:
    """
    Регистрирует подключение, отправляет текущую статистику
    и дальше принимает сообщения до отключения.
    """
    conn = None
    try:
        await ws.accept()
        conn = lobby.manager.admit(ws)
        logger.info("WS: accepted %s from %s", conn.connection_id, ws.client)
        conn.enqueue(lobby_stats_payload(lobby.stats.snapshot(lobby.manager.count())))
        while True:
            raw = await ws.receive_text()
            handle_ws_message(lobby, conn, raw)
    except WebSocketDisconnect as e:
        logger.info(
            "WS: client disconnected code=%s reason=%s id=%s",
            e.code, e.reason or "", conn.connection_id if conn else None,
        )
    except Exception as e:
        logger.exception("WS: error id=%s: %s", conn.connection_id if conn else None, e)
    finally:
        if conn:
            release_connection(lobby, conn.connection_id)
            logger.info("WS: released %s", conn.connection_id)
