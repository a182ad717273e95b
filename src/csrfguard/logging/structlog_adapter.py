# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""StructlogAdapter — structlog setup for csrfguard's loggers.

Settings (all optional)::

    csrfguard:
      logging:
        format: console        # or json
        level:
          root: INFO
          csrfguard.engine: DEBUG

Token values must never reach a log sink. Call sites never pass them, and
the :func:`redact_tokens` processor masks any event key that names one.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

from csrfguard.core.config import Config

REDACTED = "***"

SENSITIVE_KEYS = frozenset({"token", "presented", "expected", "master_token", "page_token"})

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def redact_tokens(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """structlog processor masking values stored under token-bearing keys."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _level_name(value: Any, default: str = "INFO") -> str:
    name = str(value).strip().upper()
    return name if name in _LEVELS else default


class StructlogAdapter:
    """Configure structlog on top of stdlib logging for csrfguard.

    ``csrfguard.logging.level`` may be a single level name or a mapping
    with a ``root`` entry and per-logger overrides.
    """

    def __init__(self) -> None:
        self._root_level = "INFO"
        self._format = "console"
        self._module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        level = config.get("csrfguard.logging.level")
        if isinstance(level, dict):
            overrides = dict(level)
            self._root_level = _level_name(overrides.pop("root", "INFO"))
            self._module_levels = {name: _level_name(value) for name, value in overrides.items()}
        else:
            self._root_level = _level_name(level or "INFO")
            self._module_levels = {}
        self._format = str(config.get("csrfguard.logging.format", "console")).strip().lower()

        structlog.configure(
            processors=self._processors(),
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", stream=sys.stdout, level=self._root_level, force=True)
        for name, module_level in self._module_levels.items():
            self.set_level(name, module_level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(_level_name(level))

    def _processors(self) -> list[structlog.types.Processor]:
        renderer: structlog.types.Processor
        if self._format == "json":
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer()
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            redact_tokens,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.UnicodeDecoder(),
            renderer,
        ]
