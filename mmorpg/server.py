"""Line-oriented TCP server that feeds client commands into the game."""

from __future__ import annotations

import logging
import socket
import threading

from .handler import handle_command

log = logging.getLogger(__name__)

MAX_LINE = 64 * 1024
_ACCEPT_POLL = 0.2


def _split_address(address: str) -> tuple[str, int]:
    """Split a "host:port" listen address; an empty host means every interface."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        number = int(port)
    except ValueError:
        number = socket.getservbyname(port, "tcp")
    return host, number


def _peer(conn) -> str:
    try:
        return str(conn.getpeername())
    except OSError:
        return "unknown"


class SocketConnection:
    """A player connection over a stream socket."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        """Send the bytes in full and return how many were sent."""
        with self._lock:
            self._sock.sendall(data)
        return len(data)

    def close(self) -> None:
        self._sock.close()


class Server:
    """Accepts TCP clients and runs one reader thread per connection."""

    def __init__(self, listen_addr: str, game):
        self.listen_addr = listen_addr
        self.game = game
        self.address = None
        self._listener: socket.socket | None = None
        self._quit = threading.Event()
        self._workers: set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    def start(self) -> None:
        """Listen and serve clients until stop() is called.

        Raises OSError when the address cannot be bound.
        """
        host, port = _split_address(self.listen_addr)
        listener = socket.create_server((host, port))
        with listener:
            listener.settimeout(_ACCEPT_POLL)
            self._listener = listener
            self.address = listener.getsockname()[:2]
            log.info("Server running on %s", self.listen_addr)
            threading.Thread(target=self._accept_loop, args=(listener,), daemon=True).start()
            self._quit.wait()

    def _accept_loop(self, listener: socket.socket) -> None:
        while not self._quit.is_set():
            try:
                conn, _ = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if self._quit.is_set() or listener.fileno() == -1:
                    return
                log.warning("accept error: %s", exc)
                continue
            worker = threading.Thread(target=self._serve, args=(conn,), daemon=True)
            with self._workers_lock:
                self._workers.add(worker)
            worker.start()

    def _serve(self, conn: socket.socket) -> None:
        try:
            self.handle_connection(conn)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def handle_connection(self, conn: socket.socket) -> None:
        """Register a player for the socket and apply each line it sends."""
        log.info("new connection from %s", _peer(conn))
        connection = SocketConnection(conn)
        try:
            player = self.game.add_player(connection)
            try:
                self._read_commands(conn, player)
            finally:
                self.game.remove_player(player.id)
        finally:
            connection.close()

    @staticmethod
    def _read_commands(conn: socket.socket, player) -> None:
        try:
            with conn.makefile("rb") as stream:
                while True:
                    line = stream.readline(MAX_LINE + 1)
                    if not line:
                        return
                    if len(line) > MAX_LINE and not line.endswith(b"\n"):
                        log.warning("connection error: line too long")
                        return
                    line = line.removesuffix(b"\n").removesuffix(b"\r")
                    handle_command(player, line.decode("utf-8", "replace"))
        except OSError as exc:
            log.warning("connection error: %s", exc)

    def stop(self) -> None:
        """Stop accepting clients and wait for open connections to finish."""
        self._quit.set()
        if self._listener is not None:
            self._listener.close()
        with self._workers_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join()