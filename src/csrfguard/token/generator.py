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
"""TokenGenerator — cryptographically secure CSRF token strings.

Tokens are drawn from the operating system's CSPRNG through :mod:`secrets`
and rendered in an alphabet that needs no escaping in a URL parameter,
form field, or header value.
"""

from __future__ import annotations

import base64
import os
import secrets

from csrfguard.kernel.exceptions import ConfigurationError

ALPHABETS: frozenset[str] = frozenset({"base64url", "hex"})
"""Supported token alphabets."""

DEFAULT_TOKEN_LENGTH: int = 32
"""Default number of random bytes per token."""


class TokenGenerator:
    """Generate unguessable token strings.

    Args:
        length: Number of random bytes per token (not rendered characters).
        alphabet: ``"base64url"`` (unpadded) or ``"hex"``.

    Raises:
        ConfigurationError: If the arguments are invalid or the platform
            provides no secure randomness source.
    """

    def __init__(self, length: int = DEFAULT_TOKEN_LENGTH, alphabet: str = "base64url") -> None:
        if alphabet not in ALPHABETS:
            raise ConfigurationError(
                f"Unsupported token alphabet '{alphabet}', expected one of {sorted(ALPHABETS)}",
                code="CSRF_CONFIG_ALPHABET",
            )
        self._check_length(length)
        self._length = length
        self._alphabet = alphabet
        self._probe_randomness()

    @property
    def length(self) -> int:
        return self._length

    @property
    def alphabet(self) -> str:
        return self._alphabet

    def generate(self, length: int | None = None) -> str:
        """Return a fresh token of *length* random bytes (defaults to the configured length)."""
        n = self._length if length is None else length
        self._check_length(n)
        raw = secrets.token_bytes(n)
        if self._alphabet == "hex":
            return raw.hex()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    @staticmethod
    def _check_length(length: int) -> None:
        if not isinstance(length, int) or isinstance(length, bool) or length <= 0:
            raise ConfigurationError(
                f"Token length must be a positive integer, got {length!r}",
                code="CSRF_CONFIG_LENGTH",
            )

    @staticmethod
    def _probe_randomness() -> None:
        try:
            os.urandom(1)
        except NotImplementedError as exc:
            raise ConfigurationError(
                "No cryptographically secure randomness source is available",
                code="CSRF_CONFIG_PRNG",
            ) from exc
