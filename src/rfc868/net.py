from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Tuple

from .constants import DEFAULT_BACKLOG, RECV_BUFSIZE, TIME_PORT
from .errors import BindError, ConfigurationError

Address = Tuple[str, int]


@dataclass(frozen=True, slots=True)
class ListenerConfig:
    bind_address: str | None = None
    port: int = TIME_PORT
    backlog: int = DEFAULT_BACKLOG


def resolve_bind_address(config: ListenerConfig, kind: int) -> tuple[int, tuple]:
    """Return ``(family, sockaddr)`` for binding ``config``.

    An unset bind address means every IPv4 interface.
    """
    if config.bind_address is None:
        return socket.AF_INET, ("0.0.0.0", config.port)
    try:
        infos = socket.getaddrinfo(config.bind_address, config.port, type=kind, flags=socket.AI_PASSIVE)
    except (socket.gaierror, UnicodeError) as e:
        raise ConfigurationError(f"Invalid Inet Address specified: {config.bind_address}") from e
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


def is_open(sock: socket.socket | None) -> bool:
    return sock is not None and sock.fileno() != -1


def shutdown_quietly(sock: socket.socket) -> None:
    # wakes a thread blocked in accept()/recvfrom() on platforms where close() alone does not
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


def open_stream_listener(config: ListenerConfig, timeout_s: float) -> socket.socket:
    family, addr = resolve_bind_address(config, socket.SOCK_STREAM)
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(addr)
        sock.listen(config.backlog)
    except OSError as e:
        sock.close()
        raise BindError("TCP", addr, e) from e
    sock.settimeout(timeout_s)
    return sock


class UdpEndpoint:
    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def listening(cls, config: ListenerConfig, timeout_s: float = 0.0) -> "UdpEndpoint":
        family, addr = resolve_bind_address(config, socket.SOCK_DGRAM)
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind(addr)
        except OSError as e:
            sock.close()
            raise BindError("UDP", addr, e) from e
        if timeout_s > 0:
            sock.settimeout(timeout_s)
        return cls(sock)

    @classmethod
    def sending(cls, family: int = socket.AF_INET, timeout_s: float = 0.0) -> "UdpEndpoint":
        sock = socket.socket(family, socket.SOCK_DGRAM)
        if timeout_s > 0:
            sock.settimeout(timeout_s)
        return cls(sock)

    @property
    def address(self) -> Address:
        host, port = self.sock.getsockname()[:2]
        return host, port

    def is_open(self) -> bool:
        return is_open(self.sock)

    def sendto(self, data: bytes, addr: Address) -> None:
        self.sock.sendto(data, addr)

    def recvfrom(self, bufsize: int = RECV_BUFSIZE) -> Tuple[bytes, Address]:
        return self.sock.recvfrom(bufsize)

    def shutdown(self) -> None:
        shutdown_quietly(self.sock)

    def close(self) -> None:
        self.sock.close()
