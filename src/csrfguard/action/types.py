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
"""Action types — events, dispatch context, and the action protocol."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from csrfguard.kernel.exceptions import ActionExecutionError
from csrfguard.session import Session

if TYPE_CHECKING:
    from csrfguard.token.store import TokenStore
    from csrfguard.web.request import CsrfRequest


class ActionEvent(str, Enum):
    """Validation outcome an action is invoked for."""

    FAILURE = "failure"
    SUCCESS = "success"


class RejectReason(str, Enum):
    """Why a protected request was rejected.

    ``ABORTED`` marks a valid token whose success action stopped the request.
    """

    MISSING = "missing"
    MISMATCH = "mismatch"
    NO_SESSION = "no-session"
    ABORTED = "aborted"


@dataclass
class ActionContext:
    """Data handed to every action for one request.

    Actions communicate back through :attr:`response` (the response the host
    should send instead of continuing) and :attr:`attributes`.

    The expected token is never part of the context.
    """

    request: CsrfRequest
    session: Session | None
    reason: RejectReason | None = None
    store: TokenStore | None = None
    response: Any | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    errors: list[ActionExecutionError] = field(default_factory=list)
    aborted: bool = False

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def method(self) -> str:
        return self.request.method

    def template_values(self) -> dict[str, str]:
        """Values available to action message templates."""
        return {
            "reason": self.reason.value if self.reason is not None else "",
            "path": self.path,
            "method": self.method,
            "remote_addr": str(getattr(self.request, "remote_addr", None) or "-"),
            "session_id": self.session.id if self.session is not None else "-",
        }


@runtime_checkable
class Action(Protocol):
    """Capability every configured action implements."""

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None: ...


@dataclass(frozen=True)
class ConfiguredAction:
    """An action instance bound to its configuration.

    Attributes:
        name: Instance name used in logs.
        action: The implementation.
        parameters: Parameter map passed on every call.
        events: Events the action reacts to.
    """

    name: str
    action: Action
    parameters: Mapping[str, str] = field(default_factory=dict)
    events: frozenset[ActionEvent] = frozenset({ActionEvent.FAILURE})

    def handles(self, event: ActionEvent) -> bool:
        return event in self.events
