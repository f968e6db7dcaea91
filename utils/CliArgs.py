#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import argcomplete
from argcomplete.completers import FilesCompleter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PortRelay TCP port forwarder")
    parser.add_argument("-t", "--target", type=str, default="", help="Target address (<host>:<port>)")
    parser.add_argument("-p", "--port", type=int, default=None, help="Local port to listen on (default: Forwarder.default_port)")
    parser.add_argument("-i", "--inifile", type=str, default="", help="JSON file with a list of {target, port} rules").completer = FilesCompleter(["json"])
    parser.add_argument("-c", "--config", type=str, help="Path to the YAML application config").completer = FilesCompleter(["yaml", "yml"])
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging output")
    parser.add_argument("-s", "--silent", action="store_true", help="Run silently (no console logs)")
    parser.add_argument("--version", action="store_true", help="Print the version and exit")

    argcomplete.autocomplete(parser)
    return parser


def parse_args(argv=None):
    return build_parser().parse_args(argv)
