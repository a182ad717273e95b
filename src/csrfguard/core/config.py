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
"""Configuration loading and binding for csrfguard.

Values come from, highest priority first:

1. ``CSRFGUARD_<KEY>`` environment variables (``csrfguard.token_name`` is
   ``CSRFGUARD_TOKEN_NAME``)
2. the dict or YAML/TOML file the :class:`Config` was built from, with
   profile overlays merged on top
3. model defaults

String values may embed ``${NAME}``, ``${dotted.key}`` or ``${key:default}``
placeholders.
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, cast

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

from csrfguard.kernel.exceptions import ConfigurationError

T = TypeVar("T")

ENV_PREFIX = "CSRFGUARD_"

_PREFIX_ATTR = "__csrfguard_config_prefix__"
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Class decorator naming the configuration section a model binds to.

    Usage::

        @config_properties(prefix="csrfguard")
        class CsrfGuardProperties(BaseModel):
            token_length: int = 32
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def _merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        result[key] = _merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return result


def _read(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        return tomllib.loads(path.read_text()) or {}
    return yaml.safe_load(path.read_text()) or {}


class Config:
    """Read-only view over nested configuration data with dotted-key access."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}

    @classmethod
    def from_file(cls, path: str | Path, active_profiles: list[str] | None = None) -> Config:
        """Load *path* (YAML, or TOML for ``.toml``) plus any profile overlays.

        An overlay for profile ``prod`` of ``csrfguard.yaml`` is
        ``csrfguard-prod.yaml`` in the same directory; missing overlays are
        skipped.

        Raises:
            ConfigurationError: If *path* does not exist.
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")
        data = _read(path)
        for profile in active_profiles or ():
            overlay = path.with_name(f"{path.stem}-{profile}{path.suffix}")
            if overlay.is_file():
                data = _merge(data, _read(overlay))
        return cls(data)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @staticmethod
    def env_key(key: str) -> str:
        """Environment variable consulted for the dotted *key*."""
        return ENV_PREFIX + key.removeprefix("csrfguard.").upper().replace(".", "_").replace("-", "_")

    def get(self, key: str, default: Any = None) -> Any:
        env_value = os.environ.get(self.env_key(key))
        if env_value is not None:
            return env_value
        value = self._lookup(key)
        if value is None:
            return default
        if isinstance(value, str):
            return self._interpolate(value)
        return value

    def get_section(self, prefix: str) -> dict[str, Any]:
        section = self._lookup(prefix)
        return section if isinstance(section, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Validate the section named by *config_cls*'s prefix into an instance.

        Environment variables override individual top-level fields.

        Raises:
            ConfigurationError: If the class is not a decorated pydantic
                model, or the values do not validate.
        """
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ConfigurationError(f"{config_cls.__name__} is not decorated with @config_properties")
        if not (isinstance(config_cls, type) and issubclass(config_cls, BaseModel)):
            raise ConfigurationError(f"{config_cls.__name__} must be a pydantic BaseModel")

        values = dict(self.get_section(prefix))
        for name in config_cls.model_fields:
            env_value = os.environ.get(self.env_key(f"{prefix}.{name}"))
            if env_value is not None:
                values[name] = env_value
            elif isinstance(values.get(name), str):
                values[name] = self._interpolate(values[name])

        try:
            return cast(T, config_cls.model_validate(values))
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid configuration for '{prefix}' ({config_cls.__name__}):\n{exc}",
                context={"prefix": prefix},
            ) from exc

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _interpolate(self, value: str, depth: int = 0) -> str:
        if "${" not in value:
            return value
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ConfigurationError(f"Placeholder nesting too deep (circular reference?) in '{value}'")

        def substitute(match: re.Match[str]) -> str:
            name, sep, fallback = match.group(1).partition(":")
            if name in os.environ:
                return os.environ[name]
            found = self._lookup(name)
            if found is not None:
                return self._interpolate(str(found), depth + 1)
            if sep:
                return fallback
            raise ConfigurationError(f"Unresolved placeholder '${{{name}}}'", context={"placeholder": name})

        return _PLACEHOLDER.sub(substitute, value)
