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
"""csrfguard — session-bound CSRF token lifecycle and request validation."""

from csrfguard.action import ActionContext, ActionEvent, ActionRegistry, RejectReason, default_registry
from csrfguard.config import CsrfGuardProperties
from csrfguard.core import Config
from csrfguard.engine import Outcome, ValidationEngine, ValidationResult
from csrfguard.kernel import (
    ActionExecutionError,
    ConfigurationError,
    CsrfGuardException,
    FatalActionError,
    NoSessionError,
    TokenMismatchError,
)
from csrfguard.rules import PageRule, PageRuleMatcher, Protection
from csrfguard.session import HttpSession, Session
from csrfguard.token import TokenGenerator, TokenStore
from csrfguard.web import CsrfRequest, SimpleRequest

__version__ = "0.1.0"

__all__ = [
    "ActionContext",
    "ActionEvent",
    "ActionExecutionError",
    "ActionRegistry",
    "Config",
    "ConfigurationError",
    "CsrfGuardException",
    "CsrfGuardProperties",
    "CsrfRequest",
    "FatalActionError",
    "HttpSession",
    "NoSessionError",
    "Outcome",
    "PageRule",
    "PageRuleMatcher",
    "Protection",
    "RejectReason",
    "Session",
    "SimpleRequest",
    "TokenGenerator",
    "TokenMismatchError",
    "TokenStore",
    "ValidationEngine",
    "ValidationResult",
    "default_registry",
]
