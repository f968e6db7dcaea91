#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Relay session: dial the target, pump both directions, tear down."""

from __future__ import annotations

import socket
import threading
from typing import Callable, Optional, Tuple

from modules.relay.connection import Connection
from modules.relay.copy_task import CopyTask, DEFAULT_BUFFER_SIZE
from modules.relay.rules import ForwardingRule
from utils.Logger import Logger

Dialer = Callable[[Tuple[str, int]], socket.socket]


def dial_tcp(address: Tuple[str, int]) -> socket.socket:
    """Single blocking TCP connect, no timeout."""
    return socket.create_connection(address)


class RelaySession:
    """
    Owns both connections of one relayed client.

    The target is dialed once. On success two CopyTask threads run, one per
    direction, and the session joins both before closing the target and then
    the client. On dial failure no copy runs and only the client is closed.
    """

    def __init__(self, session_id: int, client: Connection, rule: ForwardingRule,
                 buffer_size: int = DEFAULT_BUFFER_SIZE, dialer: Optional[Dialer] = None) -> None:
        self.session_id = session_id
        self.client = client
        self.rule = rule
        self.buffer_size = buffer_size
        self.dialer = dialer or dial_tcp
        self.target: Optional[Connection] = None
        self.tasks: list[CopyTask] = []

    def start(self) -> bool:
        """Run the session to completion. Returns False when the dial failed."""
        try:
            try:
                target_sock = self.dialer(self.rule.target_address)
            except (OSError, ValueError) as exc:
                Logger.error(f"[{self.session_id}] could not connect to target [{self.rule.target}]: {exc}")
                return False

            self.target = Connection(target_sock)
            Logger.info(f"[{self.session_id}] connection to server {self.target.remote} established!")
            self._relay()
            return True
        finally:
            self._teardown()

    def _relay(self) -> None:
        self.tasks = [
            CopyTask(self.session_id, self.client, self.target, self.buffer_size),
            CopyTask(self.session_id, self.target, self.client, self.buffer_size),
        ]
        threads = [
            threading.Thread(
                target=task.run,
                name=f"copy-{self.session_id}-{direction}",
                daemon=True,
            )
            for task, direction in zip(self.tasks, ("c2s", "s2c"))
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def _teardown(self) -> None:
        if self.target is not None:
            self._close(self.target, "target")
        self._close(self.client, "client")

    def _close(self, conn: Connection, role: str) -> None:
        try:
            conn.close()
        except OSError as exc:
            Logger.error(f"[{self.session_id}] could not close {role} {conn.describe()}: {exc}")

    @property
    def bytes_sent(self) -> int:
        """Bytes relayed client -> target."""
        return self.tasks[0].written if self.tasks else 0

    @property
    def bytes_received(self) -> int:
        """Bytes relayed target -> client."""
        return self.tasks[1].written if len(self.tasks) > 1 else 0


__all__ = ["RelaySession", "dial_tcp"]
