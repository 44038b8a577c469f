from __future__ import annotations

import logging
import socket
import struct
import time

import pytest

from rfc868.errors import BindError, ConfigurationError
from rfc868.listener import ListenerState
from rfc868.net import ListenerConfig
from rfc868.tcp import TcpListener

# value served by the fixed_clock fixture, 3711719665
FIXED_BYTES = bytes([0xDD, 0x3C, 0x58, 0xF1])


def fetch(addr) -> bytes:
    with socket.create_connection(addr, timeout=2.0) as sock:
        data = b""
        while True:
            chunk = sock.recv(64)
            if not chunk:
                return data
            data += chunk


def test_serves_four_bytes_then_closes(tcp_listener):
    assert tcp_listener.state is ListenerState.RUNNING
    assert fetch(tcp_listener.address) == FIXED_BYTES


def test_serves_consecutive_connections(tcp_listener):
    for _ in range(3):
        assert fetch(tcp_listener.address) == FIXED_BYTES


def test_stop_is_idempotent(tcp_listener):
    tcp_listener.stop()
    tcp_listener.stop()
    assert tcp_listener.state is ListenerState.STOPPED
    assert tcp_listener.address is None


def test_stop_before_start():
    listener = TcpListener()
    listener.stop()
    assert not listener.is_running()


def test_stop_unblocks_accept(loopback):
    listener = TcpListener(loopback)
    listener.start()
    time.sleep(0.1)
    t0 = time.monotonic()
    listener.stop()
    assert time.monotonic() - t0 < 2.0
    assert not listener.is_running()


def test_busy_port_reports_bind_failure():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        port = busy.getsockname()[1]

        listener = TcpListener(ListenerConfig("127.0.0.1", port))
        with pytest.raises(BindError) as exc:
            listener.start()
        assert exc.value.transport == "TCP"
        assert not listener.is_running()
        assert listener.state is ListenerState.STOPPED


def test_invalid_bind_address(bad_address):
    listener = TcpListener(ListenerConfig(bad_address, 0))
    with pytest.raises(ConfigurationError):
        listener.start()
    assert not listener.is_running()


def test_start_twice_rejected(tcp_listener):
    with pytest.raises(RuntimeError):
        tcp_listener.start()
    assert tcp_listener.is_running()


def test_reconfigure_running_restarts(tcp_listener, free_port):
    tcp_listener.reconfigure(ListenerConfig("127.0.0.1", free_port))
    assert tcp_listener.is_running()
    assert tcp_listener.address == ("127.0.0.1", free_port)
    assert fetch(tcp_listener.address) == FIXED_BYTES


def test_reconfigure_stopped_waits_for_start(loopback, free_port):
    listener = TcpListener(loopback)
    listener.reconfigure(ListenerConfig("127.0.0.1", free_port, backlog=7))
    assert not listener.is_running()
    assert listener.config.backlog == 7
    listener.start()
    try:
        assert listener.address == ("127.0.0.1", free_port)
    finally:
        listener.stop()


def test_failed_restart_leaves_listener_stopped(tcp_listener):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        port = busy.getsockname()[1]
        with pytest.raises(BindError):
            tcp_listener.reconfigure(ListenerConfig("127.0.0.1", port))
    assert not tcp_listener.is_running()
    assert tcp_listener.address is None


def test_connection_error_is_logged_and_loop_continues(tcp_listener, monkeypatch, caplog):
    real_sendall = socket.socket.sendall
    calls = []

    def fail_once(self, data, *args):
        calls.append(data)
        if len(calls) == 1:
            raise ConnectionResetError(104, "Connection reset by peer")
        return real_sendall(self, data, *args)

    monkeypatch.setattr(socket.socket, "sendall", fail_once)
    with caplog.at_level(logging.ERROR, logger="rfc868.tcp"):
        assert fetch(tcp_listener.address) == b""
        assert fetch(tcp_listener.address) == FIXED_BYTES
    assert tcp_listener.is_running()
    assert "Connection reset by peer" in caplog.text


def test_reset_client_does_not_stop_listener(tcp_listener):
    rude = socket.create_connection(tcp_listener.address, timeout=2.0)
    rude.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
    rude.close()
    assert fetch(tcp_listener.address) == FIXED_BYTES
    assert tcp_listener.is_running()


def test_bind_error_message():
    err = BindError("TCP", ("127.0.0.1", 37), PermissionError(13, "Permission denied"))
    assert err.errno == 13
    assert "TCP bind to 127.0.0.1:37 failed: Permission denied" in str(err)
