#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sys
import threading
from colorama import init, Fore, Style
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path

from utils.ConfigLoader import ConfigLoader, PROJECT_ROOT

init()

# Console and file writes come from many relay threads at once
_write_lock = threading.Lock()
_file_error_reported = False


class DebugColorLevel(Enum):
    SUCCESS = Fore.GREEN + Style.BRIGHT
    INFO = Fore.BLUE + Style.BRIGHT
    WARNING = Fore.YELLOW + Style.BRIGHT
    ERROR = Fore.RED + Style.BRIGHT
    DEBUG = Fore.CYAN + Style.BRIGHT
    FATAL = Fore.LIGHTRED_EX + Style.BRIGHT


class DebugLevel(IntEnum):
    NONE = 0x00
    SUCCESS = 0x01
    INFO = 0x02
    WARNING = 0x08
    ERROR = 0x10
    DEBUG = 0x20
    FATAL = 0x80
    ALL = 0xff


class Logger:
    """Unified colored console logger + daily file logger."""

    @staticmethod
    def _get_logging_mask(levels):
        level_map = {
            'None': DebugLevel.NONE,
            'Success': DebugLevel.SUCCESS,
            'Information': DebugLevel.INFO,
            'Warning': DebugLevel.WARNING,
            'Error': DebugLevel.ERROR,
            'Debug': DebugLevel.DEBUG,
            'Fatal': DebugLevel.FATAL,
            'All': DebugLevel.ALL
        }

        mask = DebugLevel.NONE
        for level in levels:
            level = level.strip()
            if level in level_map:
                mask |= level_map[level]

        return mask

    @staticmethod
    def _logging_cfg():
        return ConfigLoader.get_config().get('Logging', {})

    @staticmethod
    def _should_log(level: DebugLevel):
        levels = Logger._logging_cfg().get('logging_levels', 'All').split(',')
        mask = Logger._get_logging_mask(levels)
        return (mask & level) != 0

    @staticmethod
    def _should_log_file(level: DebugLevel):
        levels = Logger._logging_cfg().get('logging_file_levels', 'All').split(',')
        mask = Logger._get_logging_mask(levels)
        return (mask & level) != 0

    @staticmethod
    def _colorize(label, color, msg):
        date = datetime.now().strftime(Logger._logging_cfg()['date_format'])
        if label:
            return f"{color.value}{label}{Style.RESET_ALL} {date} {msg}"
        return msg

    @staticmethod
    def log_path(now=None) -> Path:
        """Path of the log file for the given day (today by default)."""
        logging_cfg = Logger._logging_cfg()
        log_dir = Path(logging_cfg['log_dir'])
        if not log_dir.is_absolute():
            log_dir = PROJECT_ROOT / log_dir
        name = (now or datetime.now()).strftime(logging_cfg['log_file_format'])
        return log_dir / name

    @staticmethod
    def add_to_log(msg, level_tag):
        global _file_error_reported

        date = datetime.now().strftime(Logger._logging_cfg()['date_format'])

        if level_tag:
            line = f"[{level_tag}] {date} {msg}"
        else:
            line = msg

        path = Logger.log_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding='utf-8', errors='replace') as log:
                log.write(line + "\n")
        except OSError as exc:
            if not _file_error_reported:
                _file_error_reported = True
                print(f"could not write log file {path}: {exc}", file=sys.stderr)

    @staticmethod
    def set_level(levels: str):
        """Override the console levels, e.g. "All" or "None"."""
        Logger._logging_cfg()['logging_levels'] = levels

    @staticmethod
    def _emit(level: DebugLevel, color: DebugColorLevel, tag: str, msg):
        with _write_lock:
            if Logger._should_log(level):
                try:
                    print(Logger._colorize(f"[{tag}]", color, msg), flush=True)
                except OSError:
                    # stdout gone (closed pipe); the file log still gets the line
                    pass
            if Logger._should_log_file(level):
                Logger.add_to_log(msg, tag)

    # ===================================================================
    # Console + File logging methods
    # ===================================================================

    @staticmethod
    def debug(msg):
        Logger._emit(DebugLevel.DEBUG, DebugColorLevel.DEBUG, "DEBUG", msg)

    @staticmethod
    def info(msg):
        Logger._emit(DebugLevel.INFO, DebugColorLevel.INFO, "INFO", msg)

    @staticmethod
    def warning(msg):
        Logger._emit(DebugLevel.WARNING, DebugColorLevel.WARNING, "WARNING", msg)

    @staticmethod
    def error(msg):
        Logger._emit(DebugLevel.ERROR, DebugColorLevel.ERROR, "ERROR", msg)

    @staticmethod
    def success(msg):
        Logger._emit(DebugLevel.SUCCESS, DebugColorLevel.SUCCESS, "SUCCESS", msg)

    @staticmethod
    def fatal(msg):
        Logger._emit(DebugLevel.FATAL, DebugColorLevel.FATAL, "FATAL", msg)
