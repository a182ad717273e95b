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
"""Constant-time token comparison."""

from __future__ import annotations

import hmac


def tokens_equal(presented: str | None, expected: str | None) -> bool:
    """Compare two tokens without leaking how much of them matched.

    ``None`` on either side never matches. Both values are compared as
    UTF-8 bytes through :func:`hmac.compare_digest`.
    """
    if presented is None or expected is None:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
