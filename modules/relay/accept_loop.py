#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Per-rule accept loop: every inbound connection becomes a relay session."""

from __future__ import annotations

import socket
import threading
from typing import Optional

from modules.relay.connection import Connection
from modules.relay.copy_task import DEFAULT_BUFFER_SIZE
from modules.relay.relay_session import Dialer, RelaySession
from modules.relay.rules import ForwardingRule
from modules.relay.session_counter import SessionCounter
from utils.Logger import Logger


class AcceptLoop:
    """
    Accepts on one listening socket for one rule, forever.

    Sessions run on their own daemon threads; the loop never waits for them.
    Accept errors are logged and accepting goes on. stop() is for process
    shutdown: the listener's poll timeout lets run() notice it.
    """

    def __init__(self, rule: ForwardingRule, listener: socket.socket, counter: SessionCounter,
                 buffer_size: int = DEFAULT_BUFFER_SIZE, dialer: Optional[Dialer] = None) -> None:
        self.rule = rule
        self.listener = listener
        self.counter = counter
        self.buffer_size = buffer_size
        self.dialer = dialer
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        while not self._stop.is_set():
            try:
                client_sock, _addr = self.listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stop.is_set():
                    break
                Logger.error(f"could not accept client connection on port {self.rule.port}: {exc}")
                continue

            self._spawn(client_sock)

    def _spawn(self, client_sock: socket.socket) -> None:
        # relay I/O has no timeouts; do not inherit the listener's poll timeout
        client_sock.settimeout(None)
        client = Connection(client_sock)
        session_id = self.counter.next()

        Logger.info(f"[{session_id}] CLIENT: {client.describe()}")
        Logger.info(f"[{session_id}] TARGET: {self.rule.target}")
        Logger.success(f"[{session_id}] client {client.describe()} connected!")

        session = RelaySession(session_id, client, self.rule, self.buffer_size, self.dialer)
        try:
            threading.Thread(
                target=session.start,
                name=f"session-{session_id}",
                daemon=True,
            ).start()
        except RuntimeError as exc:
            # thread limit reached
            Logger.error(f"[{session_id}] could not start session: {exc}")
            client.close()


__all__ = ["AcceptLoop"]
