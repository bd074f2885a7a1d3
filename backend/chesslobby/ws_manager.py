"""
Менеджер WebSocket: реестр подключений, адресная отправка и рассылка всем.
Отправка не блокирует: сообщение кладётся в очередь подключения,
а отдельная задача переписывает очередь в сокет.
"""
import asyncio
import logging
import threading
import uuid
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, connection_id: str, outbox_size: int = 256):
        self.ws = ws
        self.connection_id = connection_id
        self._loop = asyncio.get_running_loop()
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=outbox_size)
        self._sender: asyncio.Task | None = None

    def start(self) -> None:
        self._sender = self._loop.create_task(self._pump())

    def stop(self) -> None:
        if self._sender is not None:
            self._sender.cancel()
            self._sender = None

    def enqueue(self, payload: dict[str, Any]) -> None:
        """Поставить сообщение в очередь. Можно вызывать из любого потока."""
        try:
            self._loop.call_soon_threadsafe(self._put, payload)
        except RuntimeError:
            # цикл событий уже закрыт
            logger.debug("WS: loop closed, dropping message for %s", self.connection_id)

    def _put(self, payload: dict[str, Any]) -> None:
        try:
            self._outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("WS: outbox full for %s, dropping %s", self.connection_id, payload.get("type"))

    async def _pump(self) -> None:
        while True:
            payload = await self._outbox.get()
            try:
                await self.ws.send_json(payload)
            except Exception as e:
                logger.warning("WS: send to %s failed: %s", self.connection_id, e)
                return


class WSManager:
    def __init__(self, outbox_size: int = 256):
        self._lock = threading.Lock()
        self._by_id: dict[str, Connection] = {}
        self._outbox_size = outbox_size

    def admit(self, ws: WebSocket) -> Connection:
        """Зарегистрировать подключение. Вызывать внутри цикла событий."""
        conn = Connection(ws, uuid.uuid4().hex, self._outbox_size)
        with self._lock:
            self._by_id[conn.connection_id] = conn
        conn.start()
        return conn

    def remove(self, connection_id: str) -> Connection | None:
        with self._lock:
            conn = self._by_id.pop(connection_id, None)
        if conn is not None:
            conn.stop()
        return conn

    def get(self, connection_id: str) -> Connection | None:
        with self._lock:
            return self._by_id.get(connection_id)

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)

    def send_to(self, connection_id: str, payload: dict[str, Any]) -> bool:
        conn = self.get(connection_id)
        if not conn:
            logger.debug("WS: no connection %s for %s", connection_id, payload.get("type"))
            return False
        conn.enqueue(payload)
        return True

    def broadcast(self, payload: dict[str, Any]) -> int:
        with self._lock:
            conns = list(self._by_id.values())
        for conn in conns:
            conn.enqueue(payload)
        return len(conns)
