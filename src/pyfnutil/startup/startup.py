# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
import os

from pyfnutil.config.log_config import LoggerConfigurator
from pyfnutil.config.system_config_settings import SystemConfigSettings


class StartUp:
    """
    One-time process setup for the pyfnutil service: directories and logging.
    """

    @staticmethod
    def _running_in_container() -> bool:
        return os.path.exists('/.dockerenv') or bool(os.environ.get('DOCKER_CONTAINER'))

    @classmethod
    def initialize(cls) -> None:
        """
        Create the log directory and configure logging from system.json.

        Console output is enabled inside containers, where stderr is the log sink.
        """
        SystemConfigSettings.initialize_directories()

        LoggerConfigurator(SystemConfigSettings.log_dir(),
                           SystemConfigSettings.log_filename(),
                           SystemConfigSettings.log_level(),
                           to_console=cls._running_in_container())

        logging.getLogger(cls.__name__).info(
            f"Config: {SystemConfigSettings.get_config_path()}, "
            f"DMS snapshot: {SystemConfigSettings.dms_snapshot_path()}")
