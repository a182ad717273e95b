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
"""Tests for PageRule and PageRuleMatcher."""

from __future__ import annotations

import pytest

from csrfguard.kernel.exceptions import ConfigurationError
from csrfguard.rules.matcher import PageRule, PageRuleMatcher, PatternKind, Protection


class TestPageRule:
    @pytest.mark.parametrize(
        ("pattern", "kind"),
        [
            ("/login", PatternKind.EXACT),
            ("/api/*", PatternKind.PREFIX),
            ("/*", PatternKind.PREFIX),
            ("*.do", PatternKind.EXTENSION),
            (r"^/orders/\d+$", PatternKind.REGEX),
        ],
    )
    def test_kind_detection(self, pattern: str, kind: PatternKind) -> None:
        assert PageRule(pattern).kind is kind

    def test_exact_match(self) -> None:
        rule = PageRule("/login")
        assert rule.matches_path("/login")
        assert not rule.matches_path("/login/extra")
        assert not rule.matches_path("/log")

    def test_prefix_match_includes_base_path(self) -> None:
        rule = PageRule("/api/*")
        assert rule.matches_path("/api")
        assert rule.matches_path("/api/users/1")
        assert not rule.matches_path("/apiary")

    def test_root_wildcard_matches_everything(self) -> None:
        rule = PageRule("/*")
        assert rule.matches_path("/")
        assert rule.matches_path("/anything/at/all")

    def test_extension_match(self) -> None:
        rule = PageRule("*.do")
        assert rule.matches_path("/app/save.do")
        assert not rule.matches_path("/app/save.done")

    def test_regex_must_match_whole_path(self) -> None:
        rule = PageRule(r"^/orders/\d+$")
        assert rule.matches_path("/orders/42")
        assert not rule.matches_path("/orders/42/items")

    def test_invalid_regex_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            PageRule("^/orders/(\\d+$")

    def test_empty_pattern_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            PageRule("")

    def test_methods_are_normalized(self) -> None:
        rule = PageRule("/a", frozenset({"post"}))
        assert rule.methods == frozenset({"POST"})
        assert rule.applies_to_method("post")
        assert not rule.applies_to_method("GET")


class TestPageRuleMatcher:
    def test_protect_nothing_by_default(self) -> None:
        matcher = PageRuleMatcher()
        assert matcher.classify("/transfer", "POST") is Protection.UNPROTECTED

    def test_protect_all_with_empty_method_set_protects_every_method(self) -> None:
        matcher = PageRuleMatcher(protect_all=True)
        assert matcher.classify("/transfer", "GET") is Protection.PROTECTED
        assert matcher.classify("/transfer", "POST") is Protection.PROTECTED

    def test_method_set_limits_protection(self) -> None:
        matcher = PageRuleMatcher(protect_all=True, protected_methods=["POST", "put"])
        assert matcher.classify("/transfer", "POST") is Protection.PROTECTED
        assert matcher.classify("/transfer", "put") is Protection.PROTECTED
        assert matcher.classify("/transfer", "GET") is Protection.UNPROTECTED

    def test_protected_rule_under_protect_nothing(self) -> None:
        matcher = PageRuleMatcher(protected=[PageRule("/account/*")])
        assert matcher.classify("/account/transfer", "POST") is Protection.PROTECTED
        assert matcher.classify("/public", "POST") is Protection.UNPROTECTED

    def test_unprotected_rule_overrides_protected_rule(self) -> None:
        matcher = PageRuleMatcher(
            protected=[PageRule("/account/*")],
            unprotected=[PageRule("/account/login")],
        )
        assert matcher.classify("/account/login", "POST") is Protection.UNPROTECTED
        assert matcher.classify("/account/transfer", "POST") is Protection.PROTECTED

    def test_unprotected_rule_carves_out_of_protect_all(self) -> None:
        matcher = PageRuleMatcher(protect_all=True, unprotected=[PageRule("/health")])
        assert matcher.classify("/health", "POST") is Protection.UNPROTECTED
        assert matcher.classify("/other", "POST") is Protection.PROTECTED

    def test_unprotected_rule_with_method_filter(self) -> None:
        matcher = PageRuleMatcher(protect_all=True, unprotected=[PageRule("/search", frozenset({"POST"}))])
        assert matcher.classify("/search", "POST") is Protection.UNPROTECTED
        assert matcher.classify("/search", "DELETE") is Protection.PROTECTED

    def test_rule_method_filter_protects_listed_methods(self) -> None:
        matcher = PageRuleMatcher(
            protected=[PageRule("/export", frozenset({"GET"}))],
            protected_methods=["POST"],
        )
        assert matcher.classify("/export", "GET") is Protection.PROTECTED
        assert matcher.classify("/export", "POST") is Protection.UNPROTECTED

    def test_rule_method_filter_never_lowers_protect_all(self) -> None:
        bare = PageRuleMatcher(protect_all=True)
        with_rule = PageRuleMatcher(protect_all=True, protected=[PageRule("/api/*", frozenset({"POST"}))])
        assert bare.classify("/api/x", "DELETE") is Protection.PROTECTED
        assert with_rule.classify("/api/x", "DELETE") is Protection.PROTECTED
        assert with_rule.classify("/api/x", "POST") is Protection.PROTECTED

    def test_rule_method_filter_adds_to_method_set_under_protect_all(self) -> None:
        matcher = PageRuleMatcher(
            protect_all=True,
            protected=[PageRule("/export", frozenset({"GET"}))],
            protected_methods=["POST"],
        )
        assert matcher.classify("/export", "GET") is Protection.PROTECTED
        assert matcher.classify("/export", "POST") is Protection.PROTECTED
        assert matcher.classify("/export", "HEAD") is Protection.UNPROTECTED

    def test_unfiltered_rule_protects_despite_more_specific_filtered_rule(self) -> None:
        matcher = PageRuleMatcher(
            protected=[PageRule("/api/*"), PageRule("/api/admin/*", frozenset({"GET"}))],
        )
        assert matcher.classify("/api/admin/users", "DELETE") is Protection.PROTECTED
        assert matcher.classify("/api/admin/users", "GET") is Protection.PROTECTED

    def test_most_specific_protected_rule_wins(self) -> None:
        matcher = PageRuleMatcher(
            protected=[
                PageRule("/api/*", frozenset({"POST"})),
                PageRule("/api/admin/*", frozenset({"GET", "POST"})),
            ],
        )
        assert matcher.best_protected_rule("/api/admin/users") == PageRule("/api/admin/*", frozenset({"GET", "POST"}))
        assert matcher.classify("/api/admin/users", "GET") is Protection.PROTECTED
        assert matcher.classify("/api/users", "GET") is Protection.UNPROTECTED

    def test_exact_rule_beats_prefix_rule(self) -> None:
        matcher = PageRuleMatcher(
            protected=[PageRule("/*", frozenset({"POST"})), PageRule("/report", frozenset({"GET"}))],
        )
        assert matcher.classify("/report", "GET") is Protection.PROTECTED

    def test_classification_is_deterministic(self) -> None:
        matcher = PageRuleMatcher(
            protect_all=True,
            protected=[PageRule("/a/*")],
            unprotected=[PageRule("/a/open")],
            protected_methods=["POST"],
        )
        requests = [("/a/open", "POST"), ("/a/closed", "POST"), ("/a/closed", "GET"), ("/b", "POST")]
        first = [matcher.classify(p, m) for p, m in requests]
        for _ in range(5):
            assert [matcher.classify(p, m) for p, m in requests] == first

    def test_is_protected_helper(self) -> None:
        matcher = PageRuleMatcher(protect_all=True)
        assert matcher.is_protected("/x", "POST") is True
