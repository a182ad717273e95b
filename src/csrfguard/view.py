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
"""Helpers for templates that print the current token.

All helpers are read-only: they never create or rotate a token. Call
:meth:`~csrfguard.engine.ValidationEngine.prepare` (or let a validation
run) first so the session has one.
"""

from __future__ import annotations

import html

from csrfguard.engine import ValidationEngine
from csrfguard.session import Session


def token_value(engine: ValidationEngine, session: Session | None, uri: str | None = None) -> str | None:
    """Return the token to embed for *uri* (or the master token when *uri* is omitted).

    Raises:
        ValueError: If per-page tokens are enabled and no *uri* is given.
    """
    if uri is None or not uri.strip():
        if engine.properties.token_per_page:
            raise ValueError("A uri is required when per-page tokens are enabled")
        return engine.current_token(session)
    return engine.current_token_for_page(session, uri)


def token_name_value(engine: ValidationEngine, session: Session | None, uri: str | None = None) -> str:
    """Return ``<token name>=<token value>`` for use in a URL query string."""
    value = token_value(engine, session, uri)
    return f"{engine.token_carrier_name()}={value or ''}"


def hidden_field(engine: ValidationEngine, session: Session | None, uri: str | None = None) -> str:
    """Return an ``<input type="hidden">`` element carrying the token."""
    value = token_value(engine, session, uri) or ""
    name = html.escape(engine.token_carrier_name(), quote=True)
    return f'<input type="hidden" name="{name}" value="{html.escape(value, quote=True)}" />'
