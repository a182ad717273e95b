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
"""Token storage protocol and the per-session token record."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from csrfguard.session import Session


@dataclass
class SessionTokens:
    """Tokens bound to one session.

    Attributes:
        master: The session-wide token, ``None`` until first issued.
        pages: Page URI to token, oldest access first.
    """

    master: str | None = None
    pages: OrderedDict[str, str] = field(default_factory=OrderedDict)


@runtime_checkable
class TokenStorage(Protocol):
    """Where a session's :class:`SessionTokens` record lives.

    Implementations need not be synchronized for writers of one session;
    :class:`~csrfguard.token.store.TokenStore` serializes those.
    """

    def load(self, session: Session) -> SessionTokens | None: ...

    def save(self, session: Session, tokens: SessionTokens) -> None: ...

    def release(self, session_id: str) -> None: ...
