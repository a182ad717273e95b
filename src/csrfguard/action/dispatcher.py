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
"""ActionDispatcher — runs configured actions on validation outcomes.

Every action bound to an event runs, in configured order. A failing action
is logged and recorded on the context, and dispatch moves on to the next
one; only :class:`FatalActionError` stops the chain.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from csrfguard.action.registry import ActionRegistry
from csrfguard.action.types import ActionContext, ActionEvent, ConfiguredAction
from csrfguard.config.properties import ActionProperties
from csrfguard.kernel.exceptions import ActionExecutionError, ConfigurationError, FatalActionError

logger = structlog.get_logger("csrfguard.action")


class ActionDispatcher:
    """Holds the ordered action list and invokes it.

    Raises:
        ConfigurationError: If no action handles the ``failure`` event, since
            a failed validation must always have an observable consequence.
    """

    def __init__(self, actions: Iterable[ConfiguredAction]) -> None:
        self._actions: tuple[ConfiguredAction, ...] = tuple(actions)
        if not any(a.handles(ActionEvent.FAILURE) for a in self._actions):
            raise ConfigurationError(
                "At least one action must be configured for validation failures",
                code="CSRF_CONFIG_NO_ACTIONS",
            )

    @classmethod
    def from_properties(cls, actions: Sequence[ActionProperties], registry: ActionRegistry) -> ActionDispatcher:
        """Instantiate configured actions through *registry*, validating their parameters."""
        configured: list[ConfiguredAction] = []
        for props in actions:
            action = registry.create(props.action_type)
            validate = getattr(action, "validate_parameters", None)
            if validate is not None:
                validate(props.parameters)
            configured.append(
                ConfiguredAction(
                    name=props.name,
                    action=action,
                    parameters=dict(props.parameters),
                    events=frozenset(ActionEvent(e) for e in props.events),
                )
            )
        return cls(configured)

    @property
    def actions(self) -> tuple[ConfiguredAction, ...]:
        return self._actions

    def has_actions_for(self, event: ActionEvent) -> bool:
        return any(a.handles(event) for a in self._actions)

    def invoke(self, event: ActionEvent, context: ActionContext) -> None:
        """Run every action bound to *event*.

        Raises:
            FatalActionError: Re-raised from the action that asked to abort;
                ``context.aborted`` is set first.
        """
        for configured in self._actions:
            if not configured.handles(event):
                continue
            try:
                configured.action.apply(event, context, configured.parameters)
            except FatalActionError:
                context.aborted = True
                logger.info("csrf_action_aborted_request", action=configured.name, csrf_event=event.value)
                raise
            except Exception as exc:
                error = ActionExecutionError(
                    f"Action '{configured.name}' failed: {exc}",
                    action_name=configured.name,
                    context={"csrf_event": event.value, "path": context.path},
                )
                error.__cause__ = exc
                context.errors.append(error)
                logger.error(
                    "csrf_action_failed",
                    action=configured.name,
                    csrf_event=event.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
