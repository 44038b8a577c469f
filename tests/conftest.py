from __future__ import annotations

import socket

import pytest

from rfc868.codec import epoch_to_datetime
from rfc868.net import ListenerConfig
from rfc868.tcp import TcpListener
from rfc868.udp import UdpListener

FIXED_VALUE = 3711719665


@pytest.fixture
def fixed_clock():
    when = epoch_to_datetime(FIXED_VALUE)
    return lambda: when


@pytest.fixture
def loopback() -> ListenerConfig:
    return ListenerConfig(bind_address="127.0.0.1", port=0, backlog=5)


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def tcp_listener(loopback, fixed_clock):
    listener = TcpListener(loopback, clock=fixed_clock)
    listener.start()
    yield listener
    listener.stop()


@pytest.fixture
def udp_listener(loopback, fixed_clock):
    listener = UdpListener(loopback, clock=fixed_clock)
    listener.start()
    yield listener
    listener.stop()


@pytest.fixture
def bad_address(monkeypatch):
    def fail(*_args, **_kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", fail)
    return "no-such-host.invalid"
