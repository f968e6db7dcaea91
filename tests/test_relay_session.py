#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Unit tests for RelaySession."""

from __future__ import annotations

import os
import socket
import threading
import unittest
from unittest.mock import patch

from modules.relay import relay_session
from modules.relay.connection import Connection
from modules.relay.copy_task import CopyTask
from modules.relay.relay_session import RelaySession
from modules.relay.rules import ForwardingRule
from tests.net_helpers import LoopbackServer, quiet_logging, recv_all, recv_exactly

quiet_logging()


class RelaySessionTest(unittest.TestCase):

    def setUp(self) -> None:
        # near end is what the accept loop would hand over, far end plays the client
        self.far, near = socket.socketpair()
        self.client = Connection(near)

    def tearDown(self) -> None:
        self.far.close()
        self.client.close()

    def _start(self, session: RelaySession) -> threading.Thread:
        thread = threading.Thread(target=session.start, daemon=True)
        thread.start()
        return thread

    def test_dial_failure_logs_once_and_closes_client(self) -> None:
        def refuse(address):
            raise ConnectionRefusedError(111, "Connection refused")

        rule = ForwardingRule(target="127.0.0.1:1", port=8000)
        session = RelaySession(4, self.client, rule, dialer=refuse)
        with patch.object(relay_session.Logger, "error") as error, \
                patch.object(relay_session, "CopyTask") as copy_cls:
            self.assertFalse(session.start())

        copy_cls.assert_not_called()
        error.assert_called_once()
        self.assertIn("[4] could not connect to target [127.0.0.1:1]", error.call_args.args[0])
        self.assertTrue(self.client.closed)
        self.assertIsNone(session.target)
        self.assertEqual(recv_all(self.far), b"")

    def test_unparsable_target_is_a_dial_failure(self) -> None:
        rule = ForwardingRule(target="no-port-here", port=8000)
        with patch.object(relay_session.Logger, "error") as error:
            self.assertFalse(RelaySession(1, self.client, rule).start())
        error.assert_called_once()
        self.assertTrue(self.client.closed)

    def test_ping_round_trip(self) -> None:
        with LoopbackServer("echo") as server:
            session = RelaySession(1, self.client, ForwardingRule(server.address, 8000))
            thread = self._start(session)

            self.far.sendall(b"ping")
            self.assertEqual(recv_exactly(self.far, 4), b"ping")
            self.far.shutdown(socket.SHUT_WR)
            self.assertEqual(recv_all(self.far), b"")
            thread.join(timeout=5)

        self.assertFalse(thread.is_alive())
        self.assertEqual(server.received, [b"ping"])
        self.assertEqual(session.bytes_sent, 4)
        self.assertEqual(session.bytes_received, 4)
        self.assertTrue(session.target.closed)
        self.assertTrue(self.client.closed)

    def test_large_payload_both_directions(self) -> None:
        payload = os.urandom(1024 * 1024 + 3)
        with LoopbackServer("echo") as server:
            session = RelaySession(2, self.client, ForwardingRule(server.address, 8000), buffer_size=8192)
            thread = self._start(session)

            def send() -> None:
                self.far.sendall(payload)
                self.far.shutdown(socket.SHUT_WR)

            # echo needs both directions running at once or the buffers fill up
            sender = threading.Thread(target=send)
            sender.start()
            echoed = recv_all(self.far, timeout=10)
            sender.join()
            thread.join(timeout=5)

        self.assertEqual(echoed, payload)
        self.assertEqual(server.received, [payload])

    def test_teardown_waits_for_both_copy_tasks(self) -> None:
        events = []
        lock = threading.Lock()
        original_run = CopyTask.run
        original_close = Connection.close

        def recording_run(task):
            written = original_run(task)
            with lock:
                events.append("copy-done")
            return written

        def recording_close(conn):
            with lock:
                events.append("close")
            return original_close(conn)

        with LoopbackServer("echo") as server, \
                patch.object(CopyTask, "run", recording_run), \
                patch.object(Connection, "close", recording_close):
            session = RelaySession(5, self.client, ForwardingRule(server.address, 8000))
            thread = self._start(session)
            self.far.sendall(b"hello")
            self.assertEqual(recv_exactly(self.far, 5), b"hello")
            self.far.shutdown(socket.SHUT_WR)
            recv_all(self.far)
            thread.join(timeout=5)

        self.assertFalse(thread.is_alive())
        self.assertEqual(events[:2], ["copy-done", "copy-done"])
        self.assertEqual(events[2:4], ["close", "close"])

    def test_client_gone_before_any_bytes(self) -> None:
        with LoopbackServer("sink") as server:
            session = RelaySession(6, self.client, ForwardingRule(server.address, 8000))
            thread = self._start(session)
            self.far.close()
            thread.join(timeout=5)
            self.assertTrue(server.eof_seen.wait(5))

        self.assertFalse(thread.is_alive())
        self.assertEqual(session.bytes_sent, 0)
        self.assertEqual(server.received, [b""])
        self.assertTrue(session.target.closed)
        self.assertTrue(self.client.closed)

    def test_close_error_is_logged_not_raised(self) -> None:
        with LoopbackServer("echo") as server:
            session = RelaySession(8, self.client, ForwardingRule(server.address, 8000))
            self.far.shutdown(socket.SHUT_WR)

            original_close = Connection.close

            def failing_close(conn):
                original_close(conn)
                if conn is session.target:
                    raise OSError(9, "Bad file descriptor")
                return True

            with patch.object(Connection, "close", failing_close), \
                    patch.object(relay_session.Logger, "error") as error:
                self.assertTrue(session.start())

        error.assert_called_once()
        self.assertIn("[8] could not close target", error.call_args.args[0])
        self.assertTrue(self.client.closed)


if __name__ == "__main__":
    unittest.main()
