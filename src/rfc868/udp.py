from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from .codec import TimeValue, utc_now
from .constants import POLL_INTERVAL_S, RECV_BUFSIZE
from .listener import ListenerState, ServeLoop
from .net import Address, ListenerConfig, UdpEndpoint

log = logging.getLogger(__name__)


class UdpListener:
    """Replies to every datagram, whatever its payload, with one time value.

    The reply goes to the datagram's source address from the listening socket.
    """

    transport = "UDP"

    def __init__(self, config: ListenerConfig | None = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or ListenerConfig()
        self.clock = clock
        self._udp: UdpEndpoint | None = None
        self._loop: ServeLoop | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> ListenerState:
        return ListenerState.RUNNING if self.is_running() else ListenerState.STOPPED

    @property
    def address(self) -> Address | None:
        udp = self._udp
        if udp is None or not udp.is_open():
            return None
        return udp.address

    def is_running(self) -> bool:
        return (
            self._loop is not None
            and self._loop.is_alive()
            and self._udp is not None
            and self._udp.is_open()
        )

    def start(self, config: ListenerConfig | None = None) -> None:
        with self._lock:
            if self.is_running():
                raise RuntimeError("UDP listener is already running")
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
        udp = UdpEndpoint.listening(self.config, timeout_s=POLL_INTERVAL_S)
        self._udp = udp
        host, port = udp.address
        log.info("Listening for UDP time requests on %s, port %d", host, port)
        loop = ServeLoop(
            "UdpTimeServer",
            serve_one=lambda: self._receive_one(udp, loop),
            wake=udp.shutdown,
            is_open=udp.is_open,
        )
        self._loop = loop
        loop.start()

    def _stop_locked(self) -> None:
        if self._loop is not None:
            self._loop.stop()
            self._loop = None
        if self._udp is not None:
            self._udp.close()
            self._udp = None

    def _receive_one(self, udp: UdpEndpoint, loop: ServeLoop) -> None:
        _, peer = udp.recvfrom(RECV_BUFSIZE)
        # shutdown() wakes recvfrom with an empty read that is not a request
        if loop.stopping or not peer:
            return
        self._handle(udp, peer)

    def _handle(self, udp: UdpEndpoint, peer: Address) -> None:
        value = TimeValue.now(self.clock)
        try:
            udp.sendto(value.to_bytes(), peer)
        except OSError as e:
            log.error("UDP request from %s:%d failed: %s", peer[0], peer[1], e)
            return
        log.info("Processing request from %s:%d; returned %s", peer[0], peer[1], value)
