#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""One-directional byte pump between two connections."""

from __future__ import annotations

import humanize

from modules.relay.connection import Connection
from utils.Logger import Logger

DEFAULT_BUFFER_SIZE = 32 * 1024


class CopyTask:
    """
    Streams everything readable from source into destination.

    Ends on EOF or on the first socket error; there is no retry. When the
    stream ends the destination is half-closed so its peer sees EOF too.
    The returned byte count only feeds the log.
    """

    def __init__(self, session_id: int, source: Connection, destination: Connection,
                 buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self.session_id = session_id
        self.source = source
        self.destination = destination
        self.buffer_size = buffer_size
        self.written = 0
        self.error: OSError | None = None

    def run(self) -> int:
        src = self.source.describe()
        dst = self.destination.describe()
        Logger.info(f"[{self.session_id}] starts copying {src} => {dst}")

        try:
            while True:
                data = self.source.recv(self.buffer_size)
                if not data:
                    break
                self.destination.sendall(data)
                self.written += len(data)
        except OSError as exc:
            self.error = exc
            Logger.error(
                f"[{self.session_id}] copy data from: {src} to {dst}: {exc} "
                f"(after {humanize.naturalsize(self.written)})"
            )
        else:
            Logger.info(
                f"[{self.session_id}] copy data: {src} to {dst} | {humanize.naturalsize(self.written)}"
            )
        finally:
            self._propagate_eof()

        return self.written

    def _propagate_eof(self) -> None:
        try:
            self.destination.shutdown_write()
        except OSError as exc:
            # peer already gone or socket closed
            Logger.debug(f"[{self.session_id}] shutdown {self.destination.describe()}: {exc}")


def copy(session_id: int, source: Connection, destination: Connection,
         buffer_size: int = DEFAULT_BUFFER_SIZE) -> int:
    return CopyTask(session_id, source, destination, buffer_size).run()


__all__ = ["CopyTask", "copy", "DEFAULT_BUFFER_SIZE"]
