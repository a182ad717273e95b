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
"""Host session model — the protocol the guard reads and a default wrapper."""

from __future__ import annotations

import time
import uuid
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Session(Protocol):
    """The slice of a host session the guard depends on.

    The host owns the session lifecycle; the guard only reads the id and
    attaches or reads attributes.
    """

    @property
    def id(self) -> str: ...

    @property
    def invalidated(self) -> bool: ...

    def get_attribute(self, name: str) -> Any | None: ...

    def set_attribute(self, name: str, value: Any) -> None: ...


class HttpSession:
    """Default :class:`Session` implementation over a plain attribute dict.

    Hosts that keep session state in a dict (a Starlette ``request.session``
    for instance) can wrap it directly; attribute writes go straight into
    that dict.

    Args:
        session_id: Stable identifier; a random hex id when omitted.
        data: Backing attribute dict, shared rather than copied.
        is_new: Whether the host created the session for this request.
    """

    def __init__(
        self,
        session_id: str | None = None,
        data: dict[str, Any] | None = None,
        *,
        is_new: bool = False,
    ) -> None:
        self._id = session_id or uuid.uuid4().hex
        self._attributes: dict[str, Any] = data if data is not None else {}
        self._is_new = is_new
        self._invalidated = False
        self.created_at = time.time()

    @property
    def id(self) -> str:
        return self._id

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    def get_attribute(self, name: str) -> Any | None:
        return self._attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self._attributes.pop(name, None)

    def get_attribute_names(self) -> list[str]:
        return list(self._attributes)

    def invalidate(self) -> None:
        """End the session; the guard then treats it as absent."""
        self._invalidated = True
        self._attributes.clear()


def is_live(session: Session | None) -> bool:
    """Return ``True`` if *session* is present and not invalidated."""
    return session is not None and not session.invalidated
