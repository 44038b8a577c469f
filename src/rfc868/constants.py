from __future__ import annotations

WIRE_FORMAT = "!I"  # seconds since 1900-01-01T00:00:00Z, unsigned 32-bit
WIRE_SIZE = 4

TIME_PORT = 37
DEFAULT_BACKLOG = 100
RECV_BUFSIZE = 1024

POLL_INTERVAL_S = 0.25
HANDLER_TIMEOUT_S = 5.0
DEFAULT_CLIENT_TIMEOUT_S = 5.0

DATE_FORMAT = "%H:%M:%S %d %b %Y GMT"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_ADDRESS = 2
EXIT_NO_TRANSPORT = 100
