#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Port forwarder engine: listeners first, then one accept loop per rule."""

from __future__ import annotations

import threading
from typing import Iterable, List, Optional

from modules.relay.accept_loop import AcceptLoop
from modules.relay.copy_task import DEFAULT_BUFFER_SIZE
from modules.relay.listener_registry import ListenerBindError, ListenerRegistry
from modules.relay.relay_session import Dialer
from modules.relay.rules import ForwardingRule, RuleSet
from modules.relay.session_counter import SessionCounter
from utils.ConfigLoader import ConfigLoader
from utils.Logger import Logger


class PortForwarder:
    """
    Owns the listener registry, the session counter and the accept loops.

    Listeners are registered one rule at a time before that rule's loop is
    spawned. A rule whose port cannot be bound is logged and skipped; the
    other rules keep running.
    """

    def __init__(self, rules: Iterable[ForwardingRule], registry: Optional[ListenerRegistry] = None,
                 counter: Optional[SessionCounter] = None, buffer_size: Optional[int] = None,
                 dialer: Optional[Dialer] = None) -> None:
        forwarder_cfg = ConfigLoader.forwarder_settings()

        self.rules = rules if isinstance(rules, RuleSet) else RuleSet(rules)
        self.registry = registry if registry is not None else ListenerRegistry(
            host=forwarder_cfg.get("listen_host", "0.0.0.0"),
            backlog=int(forwarder_cfg.get("backlog", 128)),
            poll_interval=float(forwarder_cfg.get("accept_poll_interval", 1.0)),
        )
        self.counter = counter if counter is not None else SessionCounter()
        self.buffer_size = buffer_size or int(forwarder_cfg.get("buffer_size", DEFAULT_BUFFER_SIZE))
        self.dialer = dialer

        self.loops: List[AcceptLoop] = []
        self._threads: List[threading.Thread] = []
        # re-entrant: stop() may run from a signal handler while start() holds it
        self._lock = threading.RLock()

    def start(self) -> int:
        """Register listeners and spawn accept loops. Returns the number of loops running."""
        with self._lock:
            for rule in self.rules:
                try:
                    listener = self.registry.ensure_listener(rule.port)
                except ListenerBindError as exc:
                    Logger.error(f"rule {rule}: {exc}")
                    continue

                loop = AcceptLoop(rule, listener, self.counter, self.buffer_size, self.dialer)
                thread = threading.Thread(
                    target=loop.run,
                    name=f"accept-{rule.port}-{len(self.loops) + 1}",
                    daemon=True,
                )
                thread.start()
                self.loops.append(loop)
                self._threads.append(thread)
                Logger.success(f"Listening on port {rule.port} -> {rule.target}")

            return len(self.loops)

    def serve_forever(self) -> bool:
        """
        Start every rule and block until the loops end (only via stop()).
        Returns False when no rule could be started.
        """
        if not self.start():
            Logger.error("no listener could be started")
            return False

        Logger.info("waiting for request!")
        for thread in list(self._threads):
            thread.join()
        return True

    def stop(self) -> None:
        """Stop accepting on every port. Running sessions are left to finish."""
        with self._lock:
            loops = list(self.loops)
            threads = list(self._threads)

        for loop in loops:
            loop.stop()
        self.registry.close_all()
        for thread in threads:
            if thread is not threading.current_thread():
                thread.join()
        Logger.info("Forwarder stopped.")


__all__ = ["PortForwarder"]
