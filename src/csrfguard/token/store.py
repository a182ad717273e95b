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
"""TokenStore — per-session master tokens and optional per-page tokens.

Creation and rotation for one session are serialized by a lock scoped to
that session's id, so get-or-create is linearizable: concurrent requests
sharing a session all observe the same token. Sessions never contend with
each other beyond a brief lookup in the lock registry.

Read accessors (:meth:`TokenStore.current_token`,
:meth:`TokenStore.current_token_for_page`) take no lock and never generate.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

import structlog

from csrfguard.kernel.exceptions import NoSessionError
from csrfguard.session import Session, is_live
from csrfguard.token.compare import tokens_equal
from csrfguard.token.generator import TokenGenerator
from csrfguard.token.ports.outbound import SessionTokens, TokenStorage

logger = structlog.get_logger("csrfguard.token")


class TokenScope(str, Enum):
    """Which token a request was checked against."""

    MASTER = "master"
    PAGE = "page"


@dataclass(frozen=True)
class TokenCheck:
    """Outcome of :meth:`TokenStore.check`."""

    matched: bool
    scope: TokenScope


class _SessionLock:
    """A lock object that can be weakly referenced."""

    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.Lock()


class SessionLocks:
    """Registry handing out one lock per session id.

    Locks are held weakly: an entry disappears once no caller holds it, so
    the registry stays bounded by the number of in-flight sessions.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, _SessionLock] = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(session_id)
            if entry is None:
                entry = _SessionLock()
                self._locks[session_id] = entry
        with entry.lock:
            yield

    def discard(self, session_id: str) -> None:
        with self._guard:
            self._locks.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._locks)


class TokenStore:
    """Owns the mapping from session to master token and page tokens.

    Args:
        generator: Source of new token values.
        storage: Where each session's record is kept.
        token_per_page: Enable page-scoped tokens.
        precreate_pages: Page URIs filled eagerly when a session's record is
            first created; used only when *token_per_page* is on.
        max_page_tokens: Upper bound on page tokens per session; the least
            recently used page token is evicted first.
    """

    def __init__(
        self,
        generator: TokenGenerator,
        storage: TokenStorage,
        *,
        token_per_page: bool = False,
        precreate_pages: Iterable[str] = (),
        max_page_tokens: int = 256,
    ) -> None:
        self._generator = generator
        self._storage = storage
        self._token_per_page = token_per_page
        self._precreate_pages = tuple(precreate_pages)
        self._max_page_tokens = max_page_tokens
        self._locks = SessionLocks()

    @property
    def token_per_page(self) -> bool:
        return self._token_per_page

    @property
    def storage(self) -> TokenStorage:
        return self._storage

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def get_or_create_master_token(self, session: Session | None) -> str:
        """Return the session's master token, creating it on first use."""
        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._load_or_init(live)
            if tokens.master is None:
                tokens.master = self._generator.generate()
                self._storage.save(live, tokens)
                logger.debug("csrf_master_token_created")
            return tokens.master

    def get_or_create_token_for_page(self, session: Session | None, uri: str) -> str:
        """Return the token for *uri*, creating it on first use.

        Falls back to the master token when per-page tokens are disabled.
        """
        if not self._token_per_page:
            return self.get_or_create_master_token(session)

        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._load_or_init(live)
            token = tokens.pages.get(uri)
            if token is None:
                token = self._put_page(tokens, uri, self._generator.generate())
                self._storage.save(live, tokens)
                logger.debug("csrf_page_token_created", uri=uri)
            else:
                tokens.pages.move_to_end(uri)
            return token

    def rotate(self, session: Session | None) -> str:
        """Replace the master token. Page tokens are left untouched."""
        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._load_or_init(live)
            tokens.master = self._generator.generate()
            self._storage.save(live, tokens)
            logger.debug("csrf_master_token_rotated")
            return tokens.master

    def rotate_for_page(self, session: Session | None, uri: str) -> str:
        """Replace the token for *uri*. The master and other pages are left untouched."""
        if not self._token_per_page:
            return self.rotate(session)

        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._load_or_init(live)
            token = self._put_page(tokens, uri, self._generator.generate())
            self._storage.save(live, tokens)
            logger.debug("csrf_page_token_rotated", uri=uri)
            return token

    def rotate_all(self, session: Session | None) -> None:
        """Replace the master token and every existing page token."""
        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._load_or_init(live)
            tokens.master = self._generator.generate()
            for uri in tokens.pages:
                tokens.pages[uri] = self._generator.generate()
            self._storage.save(live, tokens)
            logger.debug("csrf_all_tokens_rotated", pages=len(tokens.pages))

    def check(self, session: Session | None, uri: str, presented: str | None, *, rotate: bool = False) -> TokenCheck:
        """Compare *presented* with the expected token for *uri* and rotate on match.

        The expected token is the page token when one exists for *uri*,
        otherwise the master token. Comparison and rotation happen under
        the session lock, so one token value can be consumed only once
        when *rotate* is set. Rotation touches only the token compared.
        """
        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._storage.load(live)
            if tokens is None or tokens.master is None:
                return TokenCheck(matched=False, scope=TokenScope.MASTER)

            if self._token_per_page and uri in tokens.pages:
                scope, expected = TokenScope.PAGE, tokens.pages[uri]
            else:
                scope, expected = TokenScope.MASTER, tokens.master

            matched = tokens_equal(presented, expected)
            if matched and rotate:
                if scope is TokenScope.PAGE:
                    self._put_page(tokens, uri, self._generator.generate())
                else:
                    tokens.master = self._generator.generate()
                self._storage.save(live, tokens)
                logger.debug("csrf_token_consumed", scope=scope.value, uri=uri)
            return TokenCheck(matched=matched, scope=scope)

    def precreate_tokens_for_known_pages(self, session: Session | None, pages: Iterable[str]) -> None:
        """Eagerly create page tokens for *pages* that have none yet."""
        if not self._token_per_page:
            return
        live = self._require(session)
        with self._locks.hold(live.id):
            tokens = self._load_or_init(live)
            self._fill_pages(tokens, pages)
            self._storage.save(live, tokens)

    def release(self, session_id: str) -> None:
        """Forget everything held for *session_id*; called when the host ends a session."""
        self._storage.release(session_id)
        self._locks.discard(session_id)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def current_token(self, session: Session | None) -> str | None:
        """Return the master token without creating one."""
        tokens = self._peek(session)
        return tokens.master if tokens is not None else None

    def current_token_for_page(self, session: Session | None, uri: str) -> str | None:
        """Return the page token for *uri*, else the master token, without creating either."""
        tokens = self._peek(session)
        if tokens is None:
            return None
        if self._token_per_page:
            token = tokens.pages.get(uri)
            if token is not None:
                return token
        return tokens.master

    def has_page_token(self, session: Session | None, uri: str) -> bool:
        if not self._token_per_page:
            return False
        tokens = self._peek(session)
        return tokens is not None and uri in tokens.pages

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require(session: Session | None) -> Session:
        if not is_live(session):
            raise NoSessionError("No live session is associated with the request", code="CSRF_NO_SESSION")
        assert session is not None
        return session

    def _peek(self, session: Session | None) -> SessionTokens | None:
        live = self._require(session)
        return self._storage.load(live)

    def _load_or_init(self, session: Session) -> SessionTokens:
        # Caller holds the session lock.
        tokens = self._storage.load(session)
        if tokens is None:
            tokens = SessionTokens()
            if self._token_per_page and self._precreate_pages:
                self._fill_pages(tokens, self._precreate_pages)
            self._storage.save(session, tokens)
        return tokens

    def _fill_pages(self, tokens: SessionTokens, pages: Iterable[str]) -> None:
        for uri in pages:
            if uri not in tokens.pages:
                self._put_page(tokens, uri, self._generator.generate())

    def _put_page(self, tokens: SessionTokens, uri: str, token: str) -> str:
        tokens.pages[uri] = token
        tokens.pages.move_to_end(uri)
        while len(tokens.pages) > self._max_page_tokens:
            tokens.pages.popitem(last=False)
        return token
