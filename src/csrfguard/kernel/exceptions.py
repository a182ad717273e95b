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
"""Unified exception hierarchy for csrfguard.

All library exceptions inherit from CsrfGuardException, so callers can
catch the root to handle every csrfguard error.

Categories:
- ConfigurationError: fatal, raised while building the engine
- NoSessionError: the request carries no live session
- TokenMismatchError: the presented token is missing or wrong
- ActionExecutionError: a configured action failed
- FatalActionError: an action asked to abort the request
"""

from __future__ import annotations


class CsrfGuardException(Exception):
    """Base exception for all csrfguard errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CSRF_MISMATCH").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


class ConfigurationError(CsrfGuardException):
    """Invalid or incomplete configuration; halts initialization."""


class NoSessionError(CsrfGuardException):
    """The request has no session, or the session was invalidated."""


class TokenMismatchError(CsrfGuardException):
    """The request did not present the expected token.

    Attributes:
        reason: ``"missing"`` when no token was presented, ``"mismatch"``
            when a token was presented but differs from the expected one.
    """

    def __init__(self, message: str, reason: str, context: dict | None = None) -> None:
        super().__init__(message, code=f"CSRF_{reason.upper().replace('-', '_')}", context=context)
        self.reason = reason


class ActionExecutionError(CsrfGuardException):
    """A configured action raised while handling a validation event."""

    def __init__(self, message: str, action_name: str, context: dict | None = None) -> None:
        super().__init__(message, code="CSRF_ACTION_FAILED", context=context)
        self.action_name = action_name


class FatalActionError(CsrfGuardException):
    """Raised by an action to stop dispatch and abort the request."""
