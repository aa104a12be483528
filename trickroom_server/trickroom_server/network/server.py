"""TCP server speaking newline-delimited JSON."""

from __future__ import annotations

import logging
import queue
import socket
import threading
import uuid
from typing import TYPE_CHECKING, Any

from .protocol import GAME_ERROR, MAX_LINE_BYTES, ProtocolError, encode_event, parse_request
from .transport import Transport

if TYPE_CHECKING:
    from trickroom_server.game.engine import GameEngine

logger = logging.getLogger(__name__)

LISTEN_BACKLOG = 16

# Outbound messages buffered per client before it counts as stalled
MAX_PENDING_MESSAGES = 256


class ClientConnection:
    """One connected client and its transient session id.

    Outbound messages go through a bounded queue drained by a writer
    thread, so senders (which may hold a game session lock) never block
    on the socket. A client that stops reading until the queue fills up
    is disconnected.
    """

    def __init__(self, conn: socket.socket, address: Any, max_pending: int = MAX_PENDING_MESSAGES):
        self.session_id = str(uuid.uuid4())
        self.socket = conn
        self.address = address
        self._outbox: queue.Queue[bytes | None] = queue.Queue(maxsize=max_pending)
        self._closed = False
        self._close_lock = threading.Lock()
        self._writer = threading.Thread(
            target=self._write_loop,
            name=f"writer-{self.session_id[:8]}",
            daemon=True,
        )

    def start(self) -> None:
        """Start the writer thread."""
        self._writer.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def send_bytes(self, data: bytes) -> None:
        """Queue raw bytes for the writer thread without blocking.

        Raises:
            ConnectionError: If the connection is closed or the client has
                fallen too far behind (the connection is closed then)
        """
        if self._closed:
            raise ConnectionError(f"Session {self.session_id} is closed")
        try:
            self._outbox.put_nowait(data)
        except queue.Full:
            self.close()
            raise ConnectionError(f"Session {self.session_id} is not reading, connection dropped") from None

    def _write_loop(self) -> None:
        while True:
            data = self._outbox.get()
            if data is None:
                return
            try:
                self.socket.sendall(data)
            except OSError as e:
                logger.debug(f"Session {self.session_id} write ended: {e}")
                self.close()
                return

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        try:
            self._outbox.put_nowait(None)
        except queue.Full:
            # Writer is stuck in sendall; shutting the socket down ends it
            pass
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.socket.close()


class GameServer(Transport):
    """TCP server hosting game rooms.

    Each connection gets its own reader thread. Every line received is
    decoded into a request and handed to the engine; events from the
    engine go out through the Transport methods.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 3001, max_pending: int = MAX_PENDING_MESSAGES):
        """Initialize server.

        Args:
            host: Host address to bind to
            port: Port number
            max_pending: Outbound messages queued per client before it is dropped
        """
        self.host = host
        self.port = port
        self.max_pending = max_pending
        self.engine: GameEngine | None = None

        self._socket: socket.socket | None = None
        self._running = False
        self._connections: dict[str, ClientConnection] = {}
        self._rooms: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def attach(self, engine: GameEngine) -> None:
        """Set the engine that receives requests and disconnects."""
        self.engine = engine

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); useful when started on port 0."""
        if self._socket is None:
            raise RuntimeError("Server not started")
        return self._socket.getsockname()[:2]

    def start(self) -> None:
        """Start the server and listen for connections."""
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._socket.bind((self.host, self.port))
        self._socket.listen(LISTEN_BACKLOG)
        self._running = True
        logger.info(f"Server listening on {self.host}:{self.port}")

    def serve_forever(self) -> None:
        """Accept connections until close() is called."""
        if self._socket is None:
            raise RuntimeError("Server not started")
        if self.engine is None:
            raise RuntimeError("No engine attached")

        while self._running:
            try:
                conn, addr = self._socket.accept()
            except OSError:
                if self._running:
                    logger.exception("Accept failed")
                break

            client = ClientConnection(conn, addr, self.max_pending)
            with self._lock:
                self._connections[client.session_id] = client
            client.start()
            logger.info(f"Connection from {addr} (session {client.session_id})")

            thread = threading.Thread(
                target=self._serve_client,
                args=(client,),
                name=f"client-{client.session_id[:8]}",
                daemon=True,
            )
            thread.start()

    def _serve_client(self, client: ClientConnection) -> None:
        """Read requests from one client until it goes away."""
        assert self.engine is not None
        try:
            with client.socket.makefile("rb") as reader:
                while True:
                    line = reader.readline(MAX_LINE_BYTES + 1)
                    if not line:
                        break
                    if len(line) > MAX_LINE_BYTES:
                        self.send(client.session_id, GAME_ERROR, "Message too large.")
                        break
                    if not line.strip():
                        continue
                    self._dispatch(client, line)
        except (OSError, ValueError) as e:
            logger.debug(f"Session {client.session_id} read ended: {e}")
        finally:
            self._drop(client)
            try:
                self.engine.disconnect(client.session_id)
            except Exception:
                logger.exception(f"Disconnect handling failed for {client.session_id}")

    def _dispatch(self, client: ClientConnection, line: bytes) -> None:
        assert self.engine is not None
        try:
            request = parse_request(line)
        except ProtocolError as e:
            logger.debug(f"Bad message from {client.session_id}: {e}")
            self.send(client.session_id, GAME_ERROR, str(e))
            return
        self.engine.handle(request, client.session_id)

    def _drop(self, client: ClientConnection) -> None:
        with self._lock:
            self._connections.pop(client.session_id, None)
            for members in self._rooms.values():
                members.discard(client.session_id)
        client.close()
        logger.info(f"Session {client.session_id} closed")

    # Transport ------------------------------------------------------------

    def send(self, session_id: str, event: str, data: Any = None) -> None:
        with self._lock:
            client = self._connections.get(session_id)
        if client is None:
            logger.debug(f"Dropping {event} for closed session {session_id}")
            return
        self._send_to(client, encode_event(event, data))

    def broadcast(self, room_id: str, event: str, data: Any = None) -> None:
        payload = encode_event(event, data)
        with self._lock:
            clients = [
                self._connections[sid]
                for sid in self._rooms.get(room_id, ())
                if sid in self._connections
            ]
        for client in clients:
            self._send_to(client, payload)

    def join(self, session_id: str, room_id: str) -> None:
        with self._lock:
            self._rooms.setdefault(room_id, set()).add(session_id)

    def _send_to(self, client: ClientConnection, payload: bytes) -> None:
        try:
            client.send_bytes(payload)
        except (OSError, ConnectionError) as e:
            logger.warning(f"Send to {client.session_id} failed: {e}")

    def close(self) -> None:
        """Close all connections and the server socket."""
        self._running = False
        with self._lock:
            clients = list(self._connections.values())
            self._connections.clear()
            self._rooms.clear()
        for client in clients:
            client.close()

        if self._socket:
            self._socket.close()
            self._socket = None

        logger.info("Server closed")

    def __enter__(self) -> "GameServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
