"""Contract shared by the TCP and UDP listeners.

Each listener owns one socket and one thread blocked in ``accept`` or
``recvfrom``. Nothing is inherited between the two transports; they both
satisfy :class:`Listener` and drive their thread through :class:`ServeLoop`.
"""
from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Protocol

from .constants import POLL_INTERVAL_S
from .net import Address, ListenerConfig

log = logging.getLogger(__name__)


class ListenerState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class Listener(Protocol):
    transport: str
    config: ListenerConfig

    @property
    def state(self) -> ListenerState: ...

    @property
    def address(self) -> Address | None: ...

    def start(self, config: ListenerConfig | None = None) -> None: ...

    def stop(self) -> None: ...

    def is_running(self) -> bool: ...

    def reconfigure(self, config: ListenerConfig) -> None: ...


class ServeLoop:
    """Runs ``serve_one`` repeatedly on a dedicated thread until stopped.

    ``serve_one`` blocks for at most the socket's poll timeout. ``wake`` must
    make a blocked call return; it runs after the terminate flag is set, so any
    error it provokes is treated as part of shutdown. ``is_open`` lets the loop
    give up on a socket that was closed underneath it.
    """

    def __init__(
        self,
        name: str,
        serve_one: Callable[[], None],
        wake: Callable[[], None],
        is_open: Callable[[], bool],
    ):
        self.name = name
        self._serve_one = serve_one
        self._wake = wake
        self._is_open = is_open
        self._terminate = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stopping(self) -> bool:
        return self._terminate.is_set()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._terminate.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._terminate.set()
        self._wake()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def _run(self) -> None:
        while not self._terminate.is_set():
            try:
                self._serve_one()
            except TimeoutError:
                continue
            except OSError as e:
                if self._terminate.is_set():
                    break
                log.error("%s socket error: %s", self.name, e)
                if not self._is_open():
                    log.error("%s socket closed unexpectedly; loop exiting", self.name)
                    break
                self._terminate.wait(POLL_INTERVAL_S)
        log.debug("%s loop exited", self.name)
