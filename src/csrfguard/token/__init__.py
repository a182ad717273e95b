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
"""Token generation and per-session token storage."""

from csrfguard.token.adapters import InMemoryTokenStorage, SessionAttributeTokenStorage
from csrfguard.token.compare import tokens_equal
from csrfguard.token.generator import TokenGenerator
from csrfguard.token.ports import SessionTokens, TokenStorage
from csrfguard.token.store import SessionLocks, TokenCheck, TokenScope, TokenStore

__all__ = [
    "InMemoryTokenStorage",
    "SessionAttributeTokenStorage",
    "SessionLocks",
    "SessionTokens",
    "TokenCheck",
    "TokenGenerator",
    "TokenScope",
    "TokenStorage",
    "TokenStore",
    "tokens_equal",
]
