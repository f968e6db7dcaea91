#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Established TCP stream with endpoints captured for logging."""

from __future__ import annotations

import socket
import threading
from typing import Any


def format_endpoint(address: Any) -> str:
    """Render a socket address as host:port ([host]:port for IPv6)."""
    if isinstance(address, tuple) and len(address) >= 2:
        host, port = address[0], address[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(address)


class Connection:
    """
    Wraps one connected socket.

    Local and remote endpoints are read once at creation, so log lines stay
    meaningful after the peer has gone away. close() is idempotent: the
    underlying socket is closed exactly once no matter how many owners ask.
    """

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.local = self._endpoint(sock.getsockname)
        self.remote = self._endpoint(sock.getpeername)
        self._closed = False
        self._lock = threading.Lock()

    @staticmethod
    def _endpoint(getter) -> str:
        try:
            return format_endpoint(getter())
        except OSError:
            return "?"

    def describe(self) -> str:
        return f"[LOCAL: {self.local} | REMOTE: {self.remote}]"

    def recv(self, size: int) -> bytes:
        return self.sock.recv(size)

    def sendall(self, data: bytes) -> None:
        self.sock.sendall(data)

    def shutdown_write(self) -> None:
        """Half-close: the peer reads EOF, our read side stays open."""
        self.sock.shutdown(socket.SHUT_WR)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> bool:
        """Close the socket. Returns False when it was already closed."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
        self.sock.close()
        return True

    def __repr__(self) -> str:
        return f"Connection{self.describe()}"
