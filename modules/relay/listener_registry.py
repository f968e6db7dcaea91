#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Process-lifetime registry of listening sockets, one per local port."""

from __future__ import annotations

import socket
import threading
from typing import Dict, Optional


class ListenerBindError(OSError):
    """A listening socket could not be created for a port."""

    def __init__(self, port: int, cause: Exception) -> None:
        errno = getattr(cause, "errno", None)
        reason = getattr(cause, "strerror", None) or cause
        message = f"could not listen on port {port}: {reason}"
        if errno is None:
            super().__init__(message)
        else:
            super().__init__(errno, message)
        self.port = port
        self.cause = cause


class ListenerRegistry:
    """
    Maps local port -> listening socket.

    ensure_listener() is idempotent: a port is bound once and every later
    request for it returns the same socket. The lock makes this hold even
    when ports are registered from several threads. Sockets stay open for
    the life of the process; close_all() exists for shutdown only.
    """

    def __init__(self, host: str = "0.0.0.0", backlog: int = 128, poll_interval: Optional[float] = 1.0) -> None:
        self.host = host
        self.backlog = backlog
        self.poll_interval = poll_interval
        self._listeners: Dict[int, socket.socket] = {}
        self._lock = threading.Lock()

    def ensure_listener(self, port: int) -> socket.socket:
        with self._lock:
            listener = self._listeners.get(port)
            if listener is None:
                listener = self._bind(port)
                self._listeners[port] = listener
            return listener

    def _bind(self, port: int) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        srv = socket.socket(family, socket.SOCK_STREAM)
        try:
            srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            srv.bind((self.host, port))
            srv.listen(self.backlog)
        except (OSError, OverflowError) as exc:
            # OverflowError: port outside 0-65535
            srv.close()
            raise ListenerBindError(port, exc) from exc
        # accept() wakes up periodically so a stopping loop can notice
        srv.settimeout(self.poll_interval)
        return srv

    def get(self, port: int) -> Optional[socket.socket]:
        with self._lock:
            return self._listeners.get(port)

    def ports(self) -> list[int]:
        with self._lock:
            return list(self._listeners)

    def __contains__(self, port: int) -> bool:
        with self._lock:
            return port in self._listeners

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def close_all(self) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
            self._listeners.clear()
        for listener in listeners:
            listener.close()


__all__ = ["ListenerRegistry", "ListenerBindError"]
