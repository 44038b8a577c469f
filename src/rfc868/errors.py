from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised for operator mistakes detected before any socket is bound."""


class BindError(OSError):
    def __init__(self, transport: str, address: tuple[str, int], cause: OSError):
        host, port = address[0], address[1]
        message = f"{transport} bind to {host}:{port} failed: {cause.strerror or cause}"
        super().__init__(cause.errno, message)
        self.transport = transport
        self.address = address
        self.cause = cause
