"""RFC868 Time Protocol over TCP and UDP.

The server reports whole seconds since 00:00 1 January 1900 GMT as a 4-byte
big-endian integer; the client asks a server for that value once.
"""

from .client import TimeResponse, Transport, request
from .codec import TimeValue, decode, encode, epoch_to_datetime, seconds_since_epoch
from .errors import BindError, ConfigurationError
from .listener import ListenerState
from .net import ListenerConfig
from .server import ServerConfig, TimeServer
from .tcp import TcpListener
from .udp import UdpListener

__all__ = [
    "BindError",
    "ConfigurationError",
    "ListenerConfig",
    "ListenerState",
    "ServerConfig",
    "TcpListener",
    "TimeResponse",
    "TimeServer",
    "TimeValue",
    "Transport",
    "UdpListener",
    "decode",
    "encode",
    "epoch_to_datetime",
    "request",
    "seconds_since_epoch",
]
