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
"""Page rules — decide whether a request path and method need a token.

Pattern syntax:

* ``/login`` — exact path.
* ``/api/*`` — the ``/api`` path and everything below it; ``/*`` matches all.
* ``*.do`` — any path ending in the extension.
* ``^/orders/\\d+$`` — a regular expression matched against the whole path.

Evaluation order::

    unprotected rule matches                      -> UNPROTECTED
    protected rule lists the method               -> PROTECTED
    protect-all or unfiltered protected rule      -> method set check -> PROTECTED / UNPROTECTED
    otherwise                                     -> UNPROTECTED

A protected rule's method filter adds protection for the methods it names;
it never removes protection that protect-all or the method set grants.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto

from csrfguard.kernel.exceptions import ConfigurationError


class Protection(Enum):
    """Classification of a request."""

    PROTECTED = auto()
    UNPROTECTED = auto()


class PatternKind(IntEnum):
    """Pattern kinds, ordered from most to least specific."""

    EXACT = 0
    REGEX = 1
    PREFIX = 2
    EXTENSION = 3


def _kind_of(pattern: str) -> PatternKind:
    if pattern.startswith("^") and pattern.endswith("$"):
        return PatternKind.REGEX
    if pattern.startswith("*."):
        return PatternKind.EXTENSION
    if pattern.endswith("*"):
        return PatternKind.PREFIX
    return PatternKind.EXACT


@dataclass(frozen=True)
class PageRule:
    """A path pattern with an optional HTTP method filter.

    Attributes:
        pattern: The path pattern (see module docstring).
        methods: Upper-case method names the rule applies to; empty means all.
    """

    pattern: str
    methods: frozenset[str] = frozenset()
    kind: PatternKind = field(init=False)
    _regex: re.Pattern[str] | None = field(init=False, default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.pattern:
            raise ConfigurationError("Page rule pattern must not be empty", code="CSRF_CONFIG_RULE")
        object.__setattr__(self, "methods", frozenset(m.upper() for m in self.methods))
        kind = _kind_of(self.pattern)
        object.__setattr__(self, "kind", kind)
        if kind is PatternKind.REGEX:
            try:
                object.__setattr__(self, "_regex", re.compile(self.pattern))
            except re.error as exc:
                raise ConfigurationError(
                    f"Invalid page rule regex '{self.pattern}': {exc}",
                    code="CSRF_CONFIG_RULE",
                ) from exc

    @property
    def prefix(self) -> str:
        """The literal part of a prefix pattern, without the wildcard."""
        return self.pattern.rstrip("*").rstrip("/")

    def matches_path(self, path: str) -> bool:
        if self.kind is PatternKind.EXACT:
            return path == self.pattern
        if self.kind is PatternKind.PREFIX:
            base = self.prefix
            if self.pattern.endswith("/*"):
                return base == "" or path == base or path.startswith(base + "/")
            return path.startswith(self.pattern[:-1])
        if self.kind is PatternKind.EXTENSION:
            return path.endswith(self.pattern[1:])
        assert self._regex is not None
        return self._regex.fullmatch(path) is not None

    def applies_to_method(self, method: str) -> bool:
        return not self.methods or method.upper() in self.methods

    def specificity(self) -> tuple[int, int]:
        """Sort key: lower sorts first (more specific)."""
        return (int(self.kind), -len(self.pattern))


class PageRuleMatcher:
    """Classify ``(path, method)`` pairs as protected or unprotected.

    Immutable after construction; :meth:`classify` is a pure function of
    its arguments and the configured rules.

    Args:
        protect_all: Default policy when no protected rule matches.
        protected: Protected page rules.
        unprotected: Unprotected page rules; always take precedence.
        protected_methods: Methods protection applies to when the matching
            protected rule has no method filter of its own; empty means all.
    """

    def __init__(
        self,
        *,
        protect_all: bool = False,
        protected: Iterable[PageRule] = (),
        unprotected: Iterable[PageRule] = (),
        protected_methods: Iterable[str] = (),
    ) -> None:
        self._protect_all = protect_all
        self._protected = tuple(sorted(protected, key=PageRule.specificity))
        self._unprotected = tuple(unprotected)
        self._protected_methods = frozenset(m.strip().upper() for m in protected_methods if m.strip())

    @property
    def protect_all(self) -> bool:
        return self._protect_all

    @property
    def protected_rules(self) -> tuple[PageRule, ...]:
        return self._protected

    @property
    def unprotected_rules(self) -> tuple[PageRule, ...]:
        return self._unprotected

    @property
    def protected_methods(self) -> frozenset[str]:
        return self._protected_methods

    def best_protected_rule(self, path: str) -> PageRule | None:
        """Return the most specific protected rule matching *path*, if any."""
        for rule in self._protected:
            if rule.matches_path(path):
                return rule
        return None

    def classify(self, path: str, method: str) -> Protection:
        method = method.upper()

        if any(r.matches_path(path) and r.applies_to_method(method) for r in self._unprotected):
            return Protection.UNPROTECTED

        matching = [r for r in self._protected if r.matches_path(path)]
        # A rule's own method filter only ever adds protection.
        if any(method in r.methods for r in matching):
            return Protection.PROTECTED

        applies = self._protect_all or any(not r.methods for r in matching)
        if applies and (not self._protected_methods or method in self._protected_methods):
            return Protection.PROTECTED
        return Protection.UNPROTECTED

    def is_protected(self, path: str, method: str) -> bool:
        return self.classify(path, method) is Protection.PROTECTED
