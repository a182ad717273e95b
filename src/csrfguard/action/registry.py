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
"""ActionRegistry — maps configuration names to action factories."""

from __future__ import annotations

from collections.abc import Callable

from csrfguard.action.builtin import (
    EmptyAction,
    ErrorAction,
    InvalidateAction,
    LogAction,
    RedirectAction,
    RequestAttributeAction,
    RotateAction,
    SessionAttributeAction,
)
from csrfguard.action.types import Action
from csrfguard.kernel.exceptions import ConfigurationError

ActionFactory = Callable[[], Action]


class ActionRegistry:
    """Registry of action implementations, keyed by name.

    Configuration only ever refers to registered names; nothing is loaded
    by import path.

    Usage::

        registry = default_registry()
        registry.register("audit", AuditAction)
        action = registry.create("audit")
    """

    def __init__(self) -> None:
        self._factories: dict[str, ActionFactory] = {}

    def register(self, name: str, factory: ActionFactory, *, replace: bool = False) -> None:
        """Register *factory* under *name*.

        Raises:
            ConfigurationError: If *name* is taken and *replace* is false.
        """
        key = name.strip().lower()
        if not key:
            raise ConfigurationError("Action name must not be empty", code="CSRF_CONFIG_ACTION")
        if key in self._factories and not replace:
            raise ConfigurationError(f"Action '{key}' is already registered", code="CSRF_CONFIG_ACTION")
        self._factories[key] = factory

    def create(self, name: str) -> Action:
        """Instantiate the action registered under *name*."""
        key = name.strip().lower()
        factory = self._factories.get(key)
        if factory is None:
            raise ConfigurationError(
                f"Unknown action '{name}'; registered actions: {', '.join(self.names())}",
                code="CSRF_CONFIG_ACTION",
            )
        return factory()

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._factories


def default_registry() -> ActionRegistry:
    """Return a new registry holding the built-in actions."""
    registry = ActionRegistry()
    registry.register("log", LogAction)
    registry.register("error", ErrorAction)
    registry.register("reject", ErrorAction)
    registry.register("redirect", RedirectAction)
    registry.register("empty", EmptyAction)
    registry.register("invalidate", InvalidateAction)
    registry.register("rotate", RotateAction)
    registry.register("request_attribute", RequestAttributeAction)
    registry.register("session_attribute", SessionAttributeAction)
    return registry
