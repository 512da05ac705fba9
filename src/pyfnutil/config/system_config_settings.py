# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import cast

from pydantic import ValidationError

from pyfnutil.config.config_manager import ConfigManager
from pyfnutil.lib.types import FileNameStr, ProtocolTag, TableId
from pyfnutil.rollup.models import TableLayout

SNAPSHOT_ENV_VAR = "PYFNUTIL_DMS_SNAPSHOT"


class SystemConfigSettings:
    """Provides dynamically reloaded system configuration via class properties."""
    _cfg        = ConfigManager()
    _logger     = logging.getLogger("SystemConfigSettings")

    _DEFAULT_BATCH_SIZE: int                = 25
    _DEFAULT_BACKLOG_SLICE_SIZE: int        = 10
    _DEFAULT_SPLIT_THRESHOLD_MHZ: float     = 65.0
    _DEFAULT_VALID_STATUS: int              = 5
    _DEFAULT_RANGE_HOURS: int               = 24
    _DEFAULT_WINDOW_MINUTES: int            = 60
    _DEFAULT_TOP_N: int                     = 3
    _DEFAULT_MAX_WORKERS: int               = 1
    _DEFAULT_BACKEND_TABLE_ID: int          = 1200500
    _DEFAULT_ALLOWED_PLATFORMS: tuple[str, ...] = ("CISCO CBR-8 CCAP Platform", "Harmonic CableOs")
    _DEFAULT_SNAPSHOT_PATH: str             = ".data/dms/snapshot.json"
    _DEFAULT_SESSION_TTL_SECONDS: int       = 900
    _DEFAULT_LOG_LEVEL: str                 = "INFO"
    _DEFAULT_LOG_DIR: str                   = "logs"
    _DEFAULT_LOG_FILENAME: str              = "pyfnutil.log"

    @classmethod
    def _config_path(cls, *path: str) -> str:
        """Return dotted path for logging."""
        return ".".join(path)

    @classmethod
    def _get_str(cls, default: str, *path: str) -> str:
        value = cls._cfg.get(*path)
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default '%s'",
                cls._config_path(*path),
                default,
            )
            return default
        if not isinstance(value, str):
            coerced = str(value)
            cls._logger.error(
                "Non-string configuration value for '%s': %r; using coerced '%s'",
                cls._config_path(*path),
                value,
                coerced,
            )
            return coerced
        if value == "":
            cls._logger.error(
                "Empty configuration value for '%s'; using default '%s'",
                cls._config_path(*path),
                default,
            )
            return default
        return value

    @classmethod
    def _get_int(cls, default: int, *path: str) -> int:
        value = cls._cfg.get(*path)
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default %d",
                cls._config_path(*path),
                default,
            )
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            cls._logger.error(
                "Invalid integer configuration value for '%s': %r; using default %d",
                cls._config_path(*path),
                value,
                default,
            )
            return default

    @classmethod
    def _get_positive_int(cls, default: int, *path: str) -> int:
        value = cls._get_int(default, *path)
        if value < 1:
            cls._logger.error(
                "Non-positive configuration value for '%s': %d; using default %d",
                cls._config_path(*path),
                value,
                default,
            )
            return default
        return value

    @classmethod
    def _get_float(cls, default: float, *path: str) -> float:
        value = cls._cfg.get(*path)
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default %s",
                cls._config_path(*path),
                default,
            )
            return default
        try:
            return float(value)
        except (TypeError, ValueError):
            cls._logger.error(
                "Invalid float configuration value for '%s': %r; using default %s",
                cls._config_path(*path),
                value,
                default,
            )
            return default

    @classmethod
    def _get_str_list(cls, default: tuple[str, ...], *path: str) -> list[str]:
        value = cls._cfg.get(*path)
        if value is None:
            cls._logger.error(
                "Missing configuration value for '%s'; using default %s",
                cls._config_path(*path),
                list(default),
            )
            return list(default)
        if not isinstance(value, list):
            cls._logger.error(
                "Invalid list configuration value for '%s': %r; using default %s",
                cls._config_path(*path),
                value,
                list(default),
            )
            return list(default)
        return [str(v) for v in value]

    @classmethod
    def get_config_path(cls) -> str:
        return cls._cfg.get_config_path()

    # Rollup
    @classmethod
    def batch_size(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_BATCH_SIZE, "Rollup", "batch_size")

    @classmethod
    def backlog_slice_size(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_BACKLOG_SLICE_SIZE, "Rollup", "backlog_slice_size")

    @classmethod
    def split_threshold_mhz(cls) -> float:
        return cls._get_float(cls._DEFAULT_SPLIT_THRESHOLD_MHZ, "Rollup", "split_threshold_mhz")

    @classmethod
    def valid_status(cls) -> int:
        return cls._get_int(cls._DEFAULT_VALID_STATUS, "Rollup", "valid_status")

    @classmethod
    def default_range_hours(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_RANGE_HOURS, "Rollup", "default_range_hours")

    @classmethod
    def window_minutes(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_WINDOW_MINUTES, "Rollup", "window_minutes")

    @classmethod
    def top_n(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_TOP_N, "Rollup", "top_n")

    @classmethod
    def max_workers(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_MAX_WORKERS, "Rollup", "max_workers")

    # Topology
    @classmethod
    def backend_table_id(cls) -> TableId:
        return cast(TableId, cls._get_int(cls._DEFAULT_BACKEND_TABLE_ID, "Topology", "backend_table_id"))

    @classmethod
    def allowed_platforms(cls) -> list[ProtocolTag]:
        return [cast(ProtocolTag, p) for p in
                cls._get_str_list(cls._DEFAULT_ALLOWED_PLATFORMS, "Topology", "allowed_platforms")]

    @classmethod
    def table_layout(cls) -> TableLayout:
        raw = cls._cfg.get("Topology", "layout")
        if not isinstance(raw, dict):
            cls._logger.error(
                "Missing configuration section '%s'; using default column layout",
                cls._config_path("Topology", "layout"),
            )
            return TableLayout()
        try:
            return TableLayout.model_validate(raw)
        except ValidationError as exc:
            cls._logger.error(
                "Invalid configuration section '%s': %s; using default column layout",
                cls._config_path("Topology", "layout"),
                exc,
            )
            return TableLayout()

    # DMS
    @classmethod
    def dms_snapshot_path(cls) -> str:
        """Snapshot file path; ``PYFNUTIL_DMS_SNAPSHOT`` overrides the configured value."""
        override = os.environ.get(SNAPSHOT_ENV_VAR)
        if override:
            return override
        return cls._get_str(cls._DEFAULT_SNAPSHOT_PATH, "Dms", "snapshot_path")

    # API
    @classmethod
    def session_ttl_seconds(cls) -> int:
        return cls._get_positive_int(cls._DEFAULT_SESSION_TTL_SECONDS, "Api", "session_ttl_seconds")

    # Logging
    @classmethod
    def log_level(cls) -> str:
        return cls._get_str(cls._DEFAULT_LOG_LEVEL, "logging", "log_level")

    @classmethod
    def log_dir(cls) -> str:
        return cls._get_str(cls._DEFAULT_LOG_DIR, "logging", "log_dir")

    @classmethod
    def log_filename(cls) -> FileNameStr:
        return cast(FileNameStr, cls._get_str(cls._DEFAULT_LOG_FILENAME, "logging", "log_filename"))

    @classmethod
    def initialize_directories(cls) -> None:
        """
        Create necessary directories if they do not exist.
        """
        Path(cls.log_dir()).mkdir(parents=True, exist_ok=True)

    @classmethod
    def reload(cls) -> None:
        """
        Reload the configuration settings.
        """
        cls._cfg.reload()
        cls.initialize_directories()
