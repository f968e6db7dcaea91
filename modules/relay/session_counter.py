#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Thread-safe session id source, used for log correlation only."""

from __future__ import annotations

import threading


class SessionCounter:
    def __init__(self, start: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = start

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


__all__ = ["SessionCounter"]
