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
"""Request model — what the engine needs to know about an incoming request.

Framework-agnostic: host adapters translate their native request into
something satisfying :class:`CsrfRequest` (or build a :class:`SimpleRequest`).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from csrfguard.session import Session


@runtime_checkable
class CsrfRequest(Protocol):
    """Request accessor consumed by :class:`~csrfguard.engine.ValidationEngine`."""

    @property
    def path(self) -> str: ...

    @property
    def method(self) -> str: ...

    @property
    def session(self) -> Session | None: ...

    def get_parameter(self, name: str) -> str | None: ...

    def get_header(self, name: str) -> str | None: ...


def _casefold_keys(headers: Mapping[str, str]) -> dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


@dataclass
class SimpleRequest:
    """Plain-data :class:`CsrfRequest` implementation.

    ``params`` merges query-string and form fields; header lookup is
    case-insensitive.
    """

    path: str
    method: str = "GET"
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    session: Session | None = None
    remote_addr: str | None = None
    state: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = _casefold_keys(self.headers)

    def get_parameter(self, name: str) -> str | None:
        return self.params.get(name)

    def get_header(self, name: str) -> str | None:
        return self.headers.get(name.lower())
