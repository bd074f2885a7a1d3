"""Константы протокола лобби: типы сообщений, стороны, формат снимка статистики."""
from typing import TypedDict


class LobbySnapshot(TypedDict):
    activePlayers: int
    gamesCompletedToday: int
    avgWaitTime: int


# Клиент -> сервер
SEARCH_GAME = "SEARCH_GAME"
CANCEL_SEARCH = "CANCEL_SEARCH"
MAKE_MOVE = "MAKE_MOVE"
GAME_OVER = "GAME_OVER"

# Сервер -> клиент
GAME_FOUND = "GAME_FOUND"
OPPONENT_MOVE = "OPPONENT_MOVE"
LOBBY_STATS = "LOBBY_STATS"

WHITE = "white"  # ходит первым
BLACK = "black"
DRAW = "draw"
SIDES = (WHITE, BLACK)
WINNERS = (WHITE, BLACK, DRAW)

REASON_REPORTED = "reported"
REASON_OPPONENT_DISCONNECTED = "opponent_disconnected"

# Рейтинг не считается, клиенту отдаётся заглушка
MOCK_ELO = 1200
