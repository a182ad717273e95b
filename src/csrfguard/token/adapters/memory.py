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
"""In-memory token side table with TTL and size-bounded eviction."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict

import structlog

from csrfguard.session import Session
from csrfguard.token.ports.outbound import SessionTokens

logger = structlog.get_logger("csrfguard.token.storage")


class InMemoryTokenStorage:
    """Side table keyed by session id, for hosts that cannot hold attributes.

    Entries expire *ttl* seconds after their last access; when the table
    holds *max_entries* sessions the least recently used one is evicted.
    Hosts that can signal session destruction should call :meth:`release`.
    """

    def __init__(self, ttl: float = 1800, max_entries: int = 10000) -> None:
        self._ttl = ttl
        self._max_entries = max_entries
        self._store: OrderedDict[str, tuple[SessionTokens, float]] = OrderedDict()
        self._lock = threading.Lock()

    def load(self, session: Session) -> SessionTokens | None:
        """Return the record for *session*, or ``None`` if missing or expired."""
        with self._lock:
            entry = self._store.get(session.id)
            if entry is None:
                return None

            tokens, expires_at = entry
            now = time.monotonic()
            if now > expires_at:
                del self._store[session.id]
                return None

            self._store[session.id] = (tokens, now + self._ttl)
            self._store.move_to_end(session.id)
            return tokens

    def save(self, session: Session, tokens: SessionTokens) -> None:
        with self._lock:
            self._store[session.id] = (tokens, time.monotonic() + self._ttl)
            self._store.move_to_end(session.id)
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)
                logger.debug("csrf_tokens_evicted", max_entries=self._max_entries)

    def release(self, session_id: str) -> None:
        with self._lock:
            self._store.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = time.monotonic()
        with self._lock:
            expired = [sid for sid, (_, expires_at) in self._store.items() if now > expires_at]
            for sid in expired:
                del self._store[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._store)
