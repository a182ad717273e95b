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
"""Token storage kept in the host session's attribute slot."""

from __future__ import annotations

from csrfguard.session import Session
from csrfguard.token.ports.outbound import SessionTokens


class SessionAttributeTokenStorage:
    """Stores the token record as a session attribute under *session_key*.

    The record lives and dies with the host session, so :meth:`release`
    has nothing to do.
    """

    def __init__(self, session_key: str) -> None:
        self._session_key = session_key

    @property
    def session_key(self) -> str:
        return self._session_key

    def load(self, session: Session) -> SessionTokens | None:
        value = session.get_attribute(self._session_key)
        return value if isinstance(value, SessionTokens) else None

    def save(self, session: Session, tokens: SessionTokens) -> None:
        session.set_attribute(self._session_key, tokens)

    def release(self, session_id: str) -> None:
        return None
