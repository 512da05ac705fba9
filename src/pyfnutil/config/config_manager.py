# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")

CONFIG_ENV_VAR = "PYFNUTIL_CONFIG"
DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "settings" / "system.json"


class ConfigManager:
    """
    JSON-backed settings store for pyfnutil.

    Resolution order for the file: explicit ``config_path``, then the
    ``PYFNUTIL_CONFIG`` environment variable, then the packaged
    ``settings/system.json``. A missing file is seeded from
    ``<name>.template`` or a ``system.json.template`` in the same folder.
    """

    def __init__(self, config_path: str | None = None) -> None:
        self._config_path = config_path or os.environ.get(CONFIG_ENV_VAR) or str(DEFAULT_CONFIG)
        self._config_data: dict[str, Any] = {}
        self.logger = logging.getLogger(self.__class__.__name__)
        self._load()

    def get_config_path(self) -> str:
        return self._config_path

    def _seed_from_template(self, target: Path) -> None:
        for template in (target.with_name(f"{target.name}.template"),
                         target.with_name("system.json.template")):
            if template.is_file():
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy(template, target)
                self.logger.info(f"Seeded {target} from {template}")
                return

    def _load(self) -> None:
        target = Path(self._config_path).resolve()
        if not target.exists():
            self._seed_from_template(target)
        if not target.exists():
            raise FileNotFoundError(f"Config file not found: {self._config_path}")

        self._config_data = json.loads(target.read_text(encoding="utf-8"))

    def get(self, *keys: str, fallback: T | None = None) -> T | None:
        """
        Walk nested sections, e.g. ``get("Rollup", "batch_size")``.

        Returns ``fallback`` when a key is absent or a non-dict value is hit
        before the last key.
        """
        node: Any = self._config_data
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return fallback
            node = node[key]
        return node

    def reload(self) -> None:
        self._load()

    def as_dict(self) -> dict[str, Any]:
        """Shallow copy of the loaded document."""
        return dict(self._config_data)

    def save(self, new_config: dict[str, Any]) -> None:
        """Replace the whole document and write it back to the config file."""
        Path(self._config_path).write_text(json.dumps(new_config, indent=4), encoding="utf-8")
        self._config_data = new_config
