#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import signal
import sys

from modules.relay.forwarder import PortForwarder
from modules.relay.rules import RuleSet, RuleSetError
from utils.CliArgs import parse_args
from utils.ConfigLoader import ConfigLoader
from utils.Logger import Logger


def load_rules(args, config) -> RuleSet:
    """Rules from --inifile when given, else the single --target/--port pair."""
    if args.inifile:
        return RuleSet.load(args.inifile)

    if not args.target:
        raise RuleSetError("either --target or --inifile is required")

    port = args.port if args.port is not None else config["Forwarder"]["default_port"]
    return RuleSet.single(args.target, int(port))


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = ConfigLoader.reload_config(args.config) if args.config else ConfigLoader.get_config()
    except RuntimeError as e:
        print(f"[FATAL] {e}", file=sys.stderr)
        return 1

    tool_name = config['tool_name']
    version = config['version']

    if args.version:
        print(f"{tool_name} {version}")
        return 0

    if args.verbose:
        Logger.set_level("All")
    if args.silent:
        Logger.set_level("None")

    Logger.info(f"{tool_name} - Version: {version}")

    try:
        rules = load_rules(args, config)
    except RuleSetError as e:
        Logger.fatal(str(e))
        return 1

    for rule in rules:
        Logger.info(f"Rule {rule}")
    Logger.info(f"{len(rules)} rule(s) on port(s) {', '.join(str(p) for p in rules.ports())}")

    forwarder = PortForwarder(rules)

    def _shutdown(signum, _frame):
        Logger.warning(f"Received signal {signal.Signals(signum).name}, shutting down")
        forwarder.stop()

    signal.signal(signal.SIGTERM, _shutdown)

    try:
        if not forwarder.serve_forever():
            return 1
    except KeyboardInterrupt:
        Logger.warning("Interrupted, shutting down")
        forwarder.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
