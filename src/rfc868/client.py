from __future__ import annotations

import enum
import logging
import socket
from dataclasses import dataclass
from datetime import datetime

from .codec import decode, epoch_to_datetime, format_time
from .constants import DEFAULT_CLIENT_TIMEOUT_S, RECV_BUFSIZE, TIME_PORT, WIRE_SIZE
from .net import UdpEndpoint

log = logging.getLogger(__name__)


class Transport(str, enum.Enum):
    TCP = "tcp"
    UDP = "udp"


@dataclass(frozen=True, slots=True)
class TimeResponse:
    raw: bytes
    value: int

    @property
    def when(self) -> datetime:
        return epoch_to_datetime(self.value)

    @property
    def short(self) -> bool:
        return len(self.raw) < WIRE_SIZE

    def describe(self) -> str:
        return f"Server response: {list(self.raw)} -> {self.value} ( {format_time(self.value)} )"


def _read_tcp(server: str, port: int, timeout_s: float) -> bytes:
    with socket.create_connection((server, port), timeout=timeout_s) as sock:
        buf = b""
        while len(buf) < WIRE_SIZE:
            chunk = sock.recv(WIRE_SIZE - len(buf))
            if not chunk:
                break
            buf += chunk
    return buf


def _read_udp(server: str, port: int, timeout_s: float) -> bytes:
    family, _, _, _, addr = socket.getaddrinfo(server, port, type=socket.SOCK_DGRAM)[0]
    udp = UdpEndpoint.sending(family, timeout_s=timeout_s)
    try:
        udp.sendto(b"", addr)
        data, _ = udp.recvfrom(RECV_BUFSIZE)
    finally:
        udp.close()
    # only the first 4 bytes count, as on TCP
    return data[:WIRE_SIZE]


def request(
    server: str = "127.0.0.1",
    transport: Transport = Transport.TCP,
    port: int = TIME_PORT,
    timeout_s: float = DEFAULT_CLIENT_TIMEOUT_S,
) -> TimeResponse:
    """Ask ``server`` for the time once; network errors are not retried."""
    transport = Transport(transport)
    log.info("Performing %s time request to %s:%d", transport.value.upper(), server, port)
    if transport is Transport.TCP:
        raw = _read_tcp(server, port, timeout_s)
    else:
        raw = _read_udp(server, port, timeout_s)

    response = TimeResponse(raw=raw, value=decode(raw))
    if response.short:
        log.warning("short response from %s: %d of %d bytes", server, len(raw), WIRE_SIZE)
    return response
