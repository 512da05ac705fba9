# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pyfnutil.lib.types import FileNameStr, PathLike

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
BANNER = "==== pyfnutil Utilization Service Starting ===="

# Rotation limits when rotate=True
MAX_LOG_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


class LoggerConfigurator:
    """
    Attach pyfnutil's file (and optional stderr) handlers to the root logger.

    Handlers installed by a previous configurator are replaced, so calling
    ``StartUp.initialize()`` again (tests, uvicorn reload) does not duplicate
    every log line.
    """

    _installed: list[logging.Handler] = []

    def __init__(self,
                 log_dir: PathLike,
                 log_filename: FileNameStr,
                 level: str = 'INFO', to_console: bool = False, rotate: bool = False
    ) -> None:
        """
        Args:
            log_dir: Directory for the log file; created if missing.
            log_filename: Log file name, e.g. ``pyfnutil.log``.
            level: Level name (``DEBUG``, ``INFO`` ...); unknown names mean INFO.
            to_console: Also write to stderr.
            rotate: Use a size-based RotatingFileHandler.
        """
        self.log_dir = Path(log_dir)
        self.log_filename = log_filename
        self.level = logging.getLevelName(level.upper())
        if not isinstance(self.level, int):
            self.level = logging.INFO
        self.to_console = to_console
        self.rotate = rotate

        self._configure()

    @property
    def log_file(self) -> Path:
        return self.log_dir / self.log_filename

    def _file_handler(self) -> logging.Handler:
        if self.rotate:
            return RotatingFileHandler(self.log_file, maxBytes=MAX_LOG_BYTES, backupCount=BACKUP_COUNT)
        return logging.FileHandler(self.log_file)

    def _configure(self) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)

        handlers = [self._file_handler()]
        if self.to_console:
            handlers.append(logging.StreamHandler(sys.stderr))

        formatter = logging.Formatter(LOG_FORMAT)
        root = logging.getLogger()
        for old in LoggerConfigurator._installed:
            root.removeHandler(old)
            old.close()

        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)
        LoggerConfigurator._installed = handlers
        root.setLevel(self.level)

        root.info(BANNER)
