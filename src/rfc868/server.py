"""Runs the TCP and UDP time listeners side by side.

``TimeServer`` owns at most one listener per transport. Both share one bind
address, port and backlog; either transport can be switched off, but not both.
"""
from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List

from .codec import utc_now
from .constants import DEFAULT_BACKLOG, TIME_PORT
from .errors import BindError, ConfigurationError
from .listener import Listener
from .net import ListenerConfig, resolve_bind_address
from .tcp import TcpListener
from .udp import UdpListener

log = logging.getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True, slots=True)
class ServerConfig:
    bind_address: str | None = None
    port: int = TIME_PORT
    backlog: int = DEFAULT_BACKLOG
    use_tcp: bool = True
    use_udp: bool = True

    def listener_config(self) -> ListenerConfig:
        return ListenerConfig(bind_address=self.bind_address, port=self.port, backlog=self.backlog)

    def validate(self) -> None:
        if not (self.use_tcp or self.use_udp):
            raise ConfigurationError("TCP or UDP (or both) must be enabled")
        resolve_bind_address(self.listener_config(), socket.SOCK_STREAM)


class TimeServer:
    def __init__(self, config: ServerConfig | None = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or ServerConfig()
        self.clock = clock
        self.tcp: TcpListener | None = None
        self.udp: UdpListener | None = None

    @property
    def listeners(self) -> List[Listener]:
        return [x for x in (self.tcp, self.udp) if x is not None]

    def is_running(self) -> bool:
        return any(x.is_running() for x in self.listeners)

    def start(self) -> List[Listener]:
        """Start every enabled listener and return the ones now running.

        Raises ConfigurationError before anything is bound. A bind failure on
        one transport is logged and leaves the other transport alone.
        """
        self.config.validate()
        if self.is_running():
            log.warning("time server already running; stop it before starting again")
            return [x for x in self.listeners if x.is_running()]

        listener_config = self.config.listener_config()
        if self.config.use_tcp:
            self.tcp = TcpListener(listener_config, clock=self.clock)
            self._start_one(self.tcp)
        if self.config.use_udp:
            self.udp = UdpListener(listener_config, clock=self.clock)
            self._start_one(self.udp)
        return [x for x in self.listeners if x.is_running()]

    def stop(self) -> None:
        for listener in self.listeners:
            listener.stop()
        self.tcp = None
        self.udp = None

    def reconfigure(self, *, bind_address=_UNSET, port: int | None = None, backlog: int | None = None) -> None:
        """Apply new listener settings, restarting only listeners that are running.

        A listener whose restart fails is left stopped; the other one is still
        reconfigured before the first failure is raised.
        """
        changes = {}
        if bind_address is not _UNSET:
            changes["bind_address"] = bind_address
        if port is not None:
            changes["port"] = port
        if backlog is not None:
            changes["backlog"] = backlog
        if not changes:
            return

        new_config = replace(self.config, **changes)
        resolve_bind_address(new_config.listener_config(), socket.SOCK_STREAM)
        self.config = new_config

        listener_config = new_config.listener_config()
        failures: List[BindError] = []
        for listener in self.listeners:
            if listener.is_running():
                log.info("restarting %s listener with %s", listener.transport, listener_config)
            try:
                listener.reconfigure(listener_config)
            except BindError as e:
                log.error("%s listener stopped after failed restart: %s", listener.transport, e)
                failures.append(e)
        if failures:
            raise failures[0]

    def _start_one(self, listener: Listener) -> None:
        try:
            listener.start()
        except BindError as e:
            log.error("%s listener not started: %s", listener.transport, e)
