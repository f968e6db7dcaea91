#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Forwarding rules: which local port relays to which target."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence, Tuple, Union


class RuleSetError(RuntimeError):
    """Rules file could not be read or decoded."""


def split_host_port(address: str) -> Tuple[str, int]:
    """
    "host:port" -> ("host", port). IPv6 hosts may be bracketed: "[::1]:80".
    Raises ValueError when the port part is missing or not a number.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port:
        raise ValueError(f"missing port in address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None


@dataclass(frozen=True)
class ForwardingRule:
    target: str
    port: int

    @property
    def target_address(self) -> Tuple[str, int]:
        return split_host_port(self.target)

    def __str__(self) -> str:
        return f":{self.port} -> {self.target}"


class RuleSet(Sequence[ForwardingRule]):
    """Immutable ordered list of forwarding rules."""

    def __init__(self, rules=()) -> None:
        self._rules: Tuple[ForwardingRule, ...] = tuple(rules)

    # ---------------------------- constructors ----------------------------
    @classmethod
    def single(cls, target: str, port: int) -> "RuleSet":
        return cls([ForwardingRule(target=target, port=port)])

    @classmethod
    def from_records(cls, records: Any) -> "RuleSet":
        """
        Decode a list of {"target": str, "port": int} objects.
        Any record of the wrong shape fails the whole set.
        """
        if not isinstance(records, list):
            raise RuleSetError(f"expected a JSON array of rules, got {type(records).__name__}")

        rules = []
        for idx, record in enumerate(records):
            if not isinstance(record, dict):
                raise RuleSetError(f"rule #{idx}: expected an object, got {type(record).__name__}")
            target = record.get("target")
            port = record.get("port")
            if not isinstance(target, str):
                raise RuleSetError(f"rule #{idx}: 'target' must be a string")
            # bool is an int subclass; JSON true is not a port
            if isinstance(port, bool) or not isinstance(port, int):
                raise RuleSetError(f"rule #{idx}: 'port' must be an integer")
            rules.append(ForwardingRule(target=target, port=port))
        return cls(rules)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "RuleSet":
        try:
            records = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RuleSetError(f"could not unmarshal data: {exc}") from exc
        return cls.from_records(records)

    @classmethod
    def load(cls, filepath) -> "RuleSet":
        path = Path(filepath)
        try:
            with open(path, "rb") as file:
                data = file.read()
        except OSError as exc:
            raise RuleSetError(f"could not open initialize file: {path}: {exc}") from exc
        return cls.from_json(data)

    # ---------------------------- sequence ----------------------------
    def __getitem__(self, index):
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[ForwardingRule]:
        return iter(self._rules)

    def __eq__(self, other) -> bool:
        if isinstance(other, RuleSet):
            return self._rules == other._rules
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({list(self._rules)!r})"

    def ports(self) -> list[int]:
        """Distinct local ports, first-seen order."""
        return list(dict.fromkeys(rule.port for rule in self._rules))


__all__ = ["ForwardingRule", "RuleSet", "RuleSetError", "split_host_port"]
