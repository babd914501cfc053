"""WebSocket front end: each text message is one client command."""

from __future__ import annotations

import asyncio
import logging
import threading

import websockets
from websockets.exceptions import ConnectionClosed

from .handler import handle_command

log = logging.getLogger(__name__)


class WSConnection:
    """A player connection that sends each write as one text frame.

    Create it on the event loop's thread; write() may then be called from any thread.
    """

    def __init__(self, websocket):
        self._websocket = websocket
        self._loop = asyncio.get_running_loop()
        self._outgoing: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._pump_task = self._loop.create_task(self._pump())

    async def _pump(self) -> None:
        while True:
            text = await self._outgoing.get()
            if text is None:
                break
            try:
                await self._websocket.send(text)
            except ConnectionClosed:
                with self._lock:
                    self._closed = True
                break
        await self._websocket.close()

    def write(self, data: bytes) -> int:
        """Queue the bytes as a text message and return their length.

        Raises ConnectionError once the connection is closed.
        """
        text = bytes(data).decode("utf-8", "replace")
        with self._lock:
            if self._closed:
                raise ConnectionError("websocket connection is closed")
            try:
                self._loop.call_soon_threadsafe(self._outgoing.put_nowait, text)
            except RuntimeError as exc:
                self._closed = True
                raise ConnectionError("websocket event loop is gone") from exc
        return len(data)

    def close(self) -> None:
        """Send what is queued, then close the websocket."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._loop.call_soon_threadsafe(self._outgoing.put_nowait, None)
            except RuntimeError:
                pass


class WSServer:
    """Attaches websocket clients to a game."""

    def __init__(self, game):
        self.game = game

    async def handle(self, websocket) -> None:
        """Serve one websocket client for as long as it stays connected."""
        conn = WSConnection(websocket)
        player = await asyncio.to_thread(self.game.add_player, conn)
        try:
            try:
                async for message in websocket:
                    if isinstance(message, bytes):
                        message = message.decode("utf-8", "replace")
                    await asyncio.to_thread(handle_command, player, message)
            except ConnectionClosed as exc:
                log.info("Player %d disconnected: %s", player.id, exc)
            else:
                log.info("Player %d disconnected", player.id)
        finally:
            conn.close()
            await asyncio.to_thread(self.game.remove_player, player.id)

    async def serve(self, host, port) -> None:
        """Accept websocket clients on host and port until cancelled."""
        async with websockets.serve(self.handle, host, port):
            await asyncio.Future()