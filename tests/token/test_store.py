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
"""Tests for TokenStore — creation, rotation, per-page isolation, concurrency."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from csrfguard.kernel.exceptions import NoSessionError
from csrfguard.session import HttpSession
from csrfguard.token.adapters.memory import InMemoryTokenStorage
from csrfguard.token.adapters.session_attribute import SessionAttributeTokenStorage
from csrfguard.token.generator import TokenGenerator
from csrfguard.token.ports.outbound import SessionTokens
from csrfguard.token.store import SessionLocks, TokenScope, TokenStore

SESSION_KEY = "OWASP_CSRFGUARD_KEY"


def _store(**kwargs: object) -> TokenStore:
    return TokenStore(TokenGenerator(), SessionAttributeTokenStorage(SESSION_KEY), **kwargs)  # type: ignore[arg-type]


class TestMasterToken:
    def test_created_lazily_and_reused(self) -> None:
        store = _store()
        session = HttpSession("s1")

        assert store.current_token(session) is None
        first = store.get_or_create_master_token(session)
        second = store.get_or_create_master_token(session)

        assert first == second
        assert store.current_token(session) == first

    def test_record_lives_in_session_attribute(self) -> None:
        store = _store()
        session = HttpSession("s1")
        token = store.get_or_create_master_token(session)

        record = session.get_attribute(SESSION_KEY)
        assert isinstance(record, SessionTokens)
        assert record.master == token

    def test_sessions_get_distinct_tokens(self) -> None:
        store = _store()
        assert store.get_or_create_master_token(HttpSession("a")) != store.get_or_create_master_token(
            HttpSession("b")
        )

    def test_rotate_replaces_master(self) -> None:
        store = _store()
        session = HttpSession("s1")
        old = store.get_or_create_master_token(session)

        new = store.rotate(session)

        assert new != old
        assert store.current_token(session) == new

    def test_current_token_never_generates(self) -> None:
        store = _store()
        session = HttpSession("s1")
        assert store.current_token(session) is None
        assert store.current_token_for_page(session, "/a") is None
        assert session.get_attribute(SESSION_KEY) is None


class TestNoSession:
    @pytest.mark.parametrize("operation", ["get_or_create_master_token", "rotate", "current_token"])
    def test_missing_session_raises(self, operation: str) -> None:
        store = _store()
        with pytest.raises(NoSessionError):
            getattr(store, operation)(None)

    def test_invalidated_session_raises(self) -> None:
        store = _store()
        session = HttpSession("s1")
        session.invalidate()
        with pytest.raises(NoSessionError):
            store.get_or_create_master_token(session)


class TestPageTokens:
    def test_disabled_page_tokens_delegate_to_master(self) -> None:
        store = _store(token_per_page=False)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)

        assert store.get_or_create_token_for_page(session, "/a") == master
        assert store.current_token_for_page(session, "/a") == master
        assert store.has_page_token(session, "/a") is False

    def test_page_token_is_distinct_from_master(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)
        page = store.get_or_create_token_for_page(session, "/a")

        assert page != master
        assert store.get_or_create_token_for_page(session, "/a") == page
        assert store.has_page_token(session, "/a") is True

    def test_current_token_for_unknown_page_falls_back_to_master(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)
        assert store.current_token_for_page(session, "/unknown") == master

    def test_rotating_one_page_leaves_others_and_master(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)
        token_a = store.get_or_create_token_for_page(session, "/a")
        token_b = store.get_or_create_token_for_page(session, "/b")

        rotated = store.rotate_for_page(session, "/a")

        assert rotated != token_a
        assert store.current_token_for_page(session, "/a") == rotated
        assert store.current_token_for_page(session, "/b") == token_b
        assert store.current_token(session) == master

    def test_rotating_master_leaves_page_tokens(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        store.get_or_create_master_token(session)
        token_a = store.get_or_create_token_for_page(session, "/a")

        store.rotate(session)

        assert store.current_token_for_page(session, "/a") == token_a

    def test_rotate_all_replaces_everything(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)
        token_a = store.get_or_create_token_for_page(session, "/a")

        store.rotate_all(session)

        assert store.current_token(session) != master
        assert store.current_token_for_page(session, "/a") != token_a

    def test_page_map_is_bounded_lru(self) -> None:
        store = _store(token_per_page=True, max_page_tokens=2)
        session = HttpSession("s1")
        store.get_or_create_token_for_page(session, "/a")
        store.get_or_create_token_for_page(session, "/b")
        store.get_or_create_token_for_page(session, "/a")  # touch /a
        store.get_or_create_token_for_page(session, "/c")

        assert store.has_page_token(session, "/a")
        assert not store.has_page_token(session, "/b")
        assert store.has_page_token(session, "/c")


class TestPrecreation:
    def test_precreate_on_first_record(self) -> None:
        store = _store(token_per_page=True, precreate_pages=["/form1", "/form2"])
        session = HttpSession("s1")

        store.get_or_create_master_token(session)

        assert store.has_page_token(session, "/form1")
        assert store.has_page_token(session, "/form2")
        assert store.current_token_for_page(session, "/form1")

    def test_explicit_precreation_keeps_existing_tokens(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        existing = store.get_or_create_token_for_page(session, "/form1")

        store.precreate_tokens_for_known_pages(session, ["/form1", "/form2"])

        assert store.current_token_for_page(session, "/form1") == existing
        assert store.has_page_token(session, "/form2")

    def test_precreation_ignored_without_page_tokens(self) -> None:
        store = _store(token_per_page=False)
        session = HttpSession("s1")
        store.precreate_tokens_for_known_pages(session, ["/form1"])
        assert session.get_attribute(SESSION_KEY) is None


class TestCheck:
    def test_master_match_without_rotation(self) -> None:
        store = _store()
        session = HttpSession("s1")
        token = store.get_or_create_master_token(session)

        check = store.check(session, "/transfer", token)

        assert check.matched is True
        assert check.scope is TokenScope.MASTER
        assert store.current_token(session) == token

    def test_match_with_rotation_consumes_token(self) -> None:
        store = _store()
        session = HttpSession("s1")
        token = store.get_or_create_master_token(session)

        assert store.check(session, "/transfer", token, rotate=True).matched is True
        assert store.check(session, "/transfer", token, rotate=True).matched is False
        assert store.current_token(session) != token

    def test_mismatch_does_not_rotate(self) -> None:
        store = _store()
        session = HttpSession("s1")
        token = store.get_or_create_master_token(session)

        assert store.check(session, "/transfer", "forged", rotate=True).matched is False
        assert store.current_token(session) == token

    def test_page_scope_rotation_leaves_master(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)
        page = store.get_or_create_token_for_page(session, "/a")

        check = store.check(session, "/a", page, rotate=True)

        assert check.matched is True
        assert check.scope is TokenScope.PAGE
        assert store.current_token(session) == master
        assert store.current_token_for_page(session, "/a") != page

    def test_master_token_rejected_where_page_token_exists(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("s1")
        master = store.get_or_create_master_token(session)
        store.get_or_create_token_for_page(session, "/a")

        assert store.check(session, "/a", master).matched is False

    def test_no_record_never_matches(self) -> None:
        store = _store()
        assert store.check(HttpSession("s1"), "/a", "anything").matched is False


class TestConcurrency:
    def test_concurrent_get_or_create_yields_one_token(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("shared")
        barrier = threading.Barrier(16)

        def create() -> str:
            barrier.wait()
            return store.get_or_create_master_token(session)

        with ThreadPoolExecutor(max_workers=16) as pool:
            tokens = list(pool.map(lambda _: create(), range(16)))

        assert len(set(tokens)) == 1

    def test_concurrent_page_creation_yields_one_token(self) -> None:
        store = _store(token_per_page=True)
        session = HttpSession("shared")
        barrier = threading.Barrier(8)

        def create() -> str:
            barrier.wait()
            return store.get_or_create_token_for_page(session, "/a")

        with ThreadPoolExecutor(max_workers=8) as pool:
            tokens = list(pool.map(lambda _: create(), range(8)))

        assert len(set(tokens)) == 1

    def test_concurrent_rotating_checks_accept_token_once(self) -> None:
        store = _store()
        session = HttpSession("shared")
        token = store.get_or_create_master_token(session)
        barrier = threading.Barrier(8)

        def consume() -> bool:
            barrier.wait()
            return store.check(session, "/transfer", token, rotate=True).matched

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: consume(), range(8)))

        assert results.count(True) == 1


class TestSessionLocks:
    def test_same_id_shares_lock_while_held(self) -> None:
        locks = SessionLocks()
        with locks.hold("a"):
            assert len(locks) == 1
            acquired = threading.Event()

            def other() -> None:
                with locks.hold("a"):
                    acquired.set()

            thread = threading.Thread(target=other)
            thread.start()
            assert not acquired.wait(0.05)
        thread.join(1)
        assert acquired.is_set()

    def test_different_ids_do_not_block(self) -> None:
        locks = SessionLocks()
        with locks.hold("a"):
            done = threading.Event()

            def other() -> None:
                with locks.hold("b"):
                    done.set()

            thread = threading.Thread(target=other)
            thread.start()
            assert done.wait(1)
            thread.join(1)


class TestRelease:
    def test_release_drops_side_table_entry(self) -> None:
        storage = InMemoryTokenStorage()
        store = TokenStore(TokenGenerator(), storage)
        session = HttpSession("s1")
        store.get_or_create_master_token(session)

        store.release("s1")

        assert store.current_token(session) is None
        assert len(storage) == 0
