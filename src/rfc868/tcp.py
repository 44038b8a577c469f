from __future__ import annotations

import logging
import socket
import threading
from datetime import datetime
from typing import Callable

from .codec import TimeValue, utc_now
from .constants import HANDLER_TIMEOUT_S, POLL_INTERVAL_S
from .listener import ListenerState, ServeLoop
from .net import Address, ListenerConfig, is_open, open_stream_listener, shutdown_quietly

log = logging.getLogger(__name__)


class TcpListener:
    """Answers each accepted connection with one time value, then closes it.

    Connections are handled one at a time on the accept thread.
    """

    transport = "TCP"

    def __init__(self, config: ListenerConfig | None = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or ListenerConfig()
        self.clock = clock
        self._sock: socket.socket | None = None
        self._loop: ServeLoop | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> ListenerState:
        return ListenerState.RUNNING if self.is_running() else ListenerState.STOPPED

    @property
    def address(self) -> Address | None:
        sock = self._sock
        if not is_open(sock):
            return None
        host, port = sock.getsockname()[:2]
        return host, port

    def is_running(self) -> bool:
        return self._loop is not None and self._loop.is_alive() and is_open(self._sock)

    def start(self, config: ListenerConfig | None = None) -> None:
        with self._lock:
            if self.is_running():
                raise RuntimeError("TCP listener is already running")
            if config is not None:
                self.config = config
            self._start_locked()

    def stop(self) -> None:
        with self._lock:
            self._stop_locked()

    def reconfigure(self, config: ListenerConfig) -> None:
        with self._lock:
            was_running = self.is_running()
            self._stop_locked()
            self.config = config
            if was_running:
                self._start_locked()

    def _start_locked(self) -> None:
        self._stop_locked()
        sock = open_stream_listener(self.config, POLL_INTERVAL_S)
        self._sock = sock
        host, port = sock.getsockname()[:2]
        log.info(
            "Listening for TCP time requests on %s, port %d, with backlog %d",
            host,
            port,
            self.config.backlog,
        )
        self._loop = ServeLoop(
            "TcpTimeServer",
            serve_one=lambda: self._accept_one(sock),
            wake=lambda: shutdown_quietly(sock),
            is_open=lambda: is_open(sock),
        )
        self._loop.start()

    def _stop_locked(self) -> None:
        if self._loop is not None:
            self._loop.stop()
            self._loop = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def _accept_one(self, sock: socket.socket) -> None:
        conn, peer = sock.accept()
        self._handle(conn, peer)

    def _handle(self, conn: socket.socket, peer: Address) -> None:
        with conn:
            try:
                conn.settimeout(HANDLER_TIMEOUT_S)
                value = TimeValue.now(self.clock)
                conn.sendall(value.to_bytes())
            except OSError as e:
                log.error("TCP request from %s:%d failed: %s", peer[0], peer[1], e)
                return
        log.info("Processing request from %s:%d; returned %s", peer[0], peer[1], value)
