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
"""ValidationEngine — decides the fate of every incoming request.

Each call to :meth:`ValidationEngine.validate` ends in exactly one of three
outcomes:

* **BYPASSED** — the page rules leave the request unprotected.
* **ACCEPTED** — the request presented the expected token.
* **REJECTED** — the token was missing or wrong, there was no session, or a
  success action aborted the request.
  Failure actions decide what the client sees.

Missing and mismatched tokens are data, not faults: nothing raised for
them crosses the engine boundary. Only construction can fail, with
:class:`~csrfguard.kernel.exceptions.ConfigurationError`.

Usage::

    engine = ValidationEngine.from_properties(CsrfGuardProperties(
        protect=True,
        protected_methods=["POST"],
        unprotected_pages=["/health"],
        actions=[{"name": "log"}, {"name": "reject"}],
    ))
    result = engine.validate(request)
    if result.rejected:
        return result.response
"""

from __future__ import annotations

import contextlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

import structlog
from starlette.responses import RedirectResponse

from csrfguard.action.dispatcher import ActionDispatcher
from csrfguard.action.registry import ActionRegistry, default_registry
from csrfguard.action.types import ActionContext, ActionEvent, RejectReason
from csrfguard.config.properties import CsrfGuardProperties
from csrfguard.core.config import Config
from csrfguard.kernel.exceptions import (
    ActionExecutionError,
    FatalActionError,
    NoSessionError,
    TokenMismatchError,
)
from csrfguard.rules.matcher import PageRule, PageRuleMatcher, Protection
from csrfguard.session import Session, is_live
from csrfguard.token.adapters.memory import InMemoryTokenStorage
from csrfguard.token.adapters.session_attribute import SessionAttributeTokenStorage
from csrfguard.token.generator import TokenGenerator
from csrfguard.token.ports.outbound import TokenStorage
from csrfguard.token.store import TokenStore
from csrfguard.web.request import CsrfRequest

logger = structlog.get_logger("csrfguard.engine")


class Outcome(Enum):
    """Terminal outcome of a validation."""

    ACCEPTED = auto()
    REJECTED = auto()
    BYPASSED = auto()


@dataclass(frozen=True)
class ValidationResult:
    """What the engine decided for one request.

    Attributes:
        outcome: The terminal outcome.
        reason: Why the request was rejected; ``None`` otherwise.
        redirect_url: Landing page the client should be sent to, if any.
        response: Response chosen by an action (or the landing-page
            redirect) that the host should send instead of continuing.
        aborted: ``True`` if an action stopped the request.
        attributes: Values actions attached for downstream code.
        errors: Failures of individual actions, already logged.
    """

    outcome: Outcome
    reason: RejectReason | None = None
    redirect_url: str | None = None
    response: Any | None = None
    aborted: bool = False
    attributes: Mapping[str, Any] = field(default_factory=dict)
    errors: tuple[ActionExecutionError, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.outcome is Outcome.ACCEPTED

    @property
    def rejected(self) -> bool:
        return self.outcome is Outcome.REJECTED

    @property
    def bypassed(self) -> bool:
        return self.outcome is Outcome.BYPASSED


def _canonical_uri(path: str) -> str:
    return path.split("?", 1)[0] or "/"


class ValidationEngine:
    """Per-request orchestrator over rules, token store, and actions.

    Safe to share across threads and tasks: configuration is read-only and
    all shared mutable state lives in the :class:`TokenStore`.
    """

    def __init__(
        self,
        properties: CsrfGuardProperties,
        matcher: PageRuleMatcher,
        store: TokenStore,
        dispatcher: ActionDispatcher,
    ) -> None:
        self._properties = properties
        self._matcher = matcher
        self._store = store
        self._dispatcher = dispatcher

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    @classmethod
    def from_properties(
        cls,
        properties: CsrfGuardProperties,
        registry: ActionRegistry | None = None,
        storage: TokenStorage | None = None,
    ) -> ValidationEngine:
        """Build an engine and its collaborators from *properties*.

        Raises:
            ConfigurationError: On an invalid rule, unknown action, missing
                failure action, or unavailable randomness source.
        """
        generator = TokenGenerator(properties.token_length, properties.token_alphabet)
        if storage is None:
            if properties.storage == "memory":
                storage = InMemoryTokenStorage(ttl=properties.storage_ttl, max_entries=properties.storage_max_entries)
            else:
                storage = SessionAttributeTokenStorage(properties.session_key)

        store = TokenStore(
            generator,
            storage,
            token_per_page=properties.token_per_page,
            precreate_pages=properties.precreate_pages if properties.token_per_page_precreate else (),
            max_page_tokens=properties.max_page_tokens,
        )
        matcher = PageRuleMatcher(
            protect_all=properties.protect,
            protected=[PageRule(r.pattern, frozenset(r.methods)) for r in properties.protected_pages],
            unprotected=[PageRule(r.pattern, frozenset(r.methods)) for r in properties.unprotected_pages],
            protected_methods=properties.protected_methods,
        )
        dispatcher = ActionDispatcher.from_properties(properties.actions, registry or default_registry())

        logger.info(
            "csrf_engine_initialized",
            protect_all=properties.protect,
            rotate=properties.rotate,
            token_per_page=properties.token_per_page,
            actions=[a.name for a in dispatcher.actions],
        )
        return cls(properties, matcher, store, dispatcher)

    @classmethod
    def from_config(cls, config: Config, registry: ActionRegistry | None = None) -> ValidationEngine:
        """Bind ``csrfguard.*`` from *config* and build an engine."""
        return cls.from_properties(config.bind(CsrfGuardProperties), registry)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def properties(self) -> CsrfGuardProperties:
        return self._properties

    @property
    def matcher(self) -> PageRuleMatcher:
        return self._matcher

    @property
    def store(self) -> TokenStore:
        return self._store

    @property
    def dispatcher(self) -> ActionDispatcher:
        return self._dispatcher

    def token_carrier_name(self) -> str:
        """Name of the parameter or header that carries the token."""
        return self._properties.token_name

    def current_token(self, session: Session | None) -> str | None:
        """Read the session's master token for rendering; never creates one."""
        return self._store.current_token(session)

    def current_token_for_page(self, session: Session | None, uri: str) -> str | None:
        """Read the token to render for *uri*; never creates one."""
        return self._store.current_token_for_page(session, _canonical_uri(uri))

    def prepare(self, session: Session | None) -> str:
        """Issue the session's tokens ahead of rendering and return the master token.

        Creates the master token and, when enabled, the precreated page tokens.

        Raises:
            NoSessionError: If *session* is absent or invalidated.
        """
        token = self._store.get_or_create_master_token(session)
        if self._properties.token_per_page and self._properties.token_per_page_precreate:
            self._store.precreate_tokens_for_known_pages(session, self._properties.precreate_pages)
        return token

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def is_ajax(self, request: CsrfRequest) -> bool:
        if not self._properties.ajax:
            return False
        return request.get_header(self._properties.ajax_header) == self._properties.ajax_header_value

    def presented_token(self, request: CsrfRequest) -> str | None:
        """Read the token the request carries, or ``None`` if absent or empty."""
        name = self._properties.token_name
        if self.is_ajax(request) or self._properties.token_carrier == "header":
            value = request.get_header(name)
        else:
            value = request.get_parameter(name)
        return value or None

    def validate(self, request: CsrfRequest) -> ValidationResult:
        """Classify, verify, and dispatch for one request."""
        uri = _canonical_uri(request.path)
        method = request.method.upper()
        session = request.session

        if self._matcher.classify(uri, method) is Protection.UNPROTECTED:
            if is_live(session):
                # Page tokens are minted only on the protected path.
                self.prepare(session)
            return ValidationResult(Outcome.BYPASSED)

        try:
            if not is_live(session):
                raise NoSessionError("No live session for protected request", code="CSRF_NO_SESSION")
            assert session is not None

            if self._store.current_token(session) is None:
                self._issue_tokens(session, uri)
                if self._properties.landing_page_enabled:
                    return self._landing_page(RejectReason.MISSING)

            self._verify(request, session, uri)
        except NoSessionError:
            if self._properties.landing_page_enabled:
                return self._landing_page(RejectReason.NO_SESSION)
            return self._reject(request, None, RejectReason.NO_SESSION)
        except TokenMismatchError as exc:
            return self._reject(request, session, RejectReason(exc.reason))

        return self._accept(request, session, uri)

    def _verify(self, request: CsrfRequest, session: Session, uri: str) -> None:
        presented = self.presented_token(request)
        if presented is None:
            raise TokenMismatchError("Request did not present a CSRF token", reason=RejectReason.MISSING.value)
        check = self._store.check(session, uri, presented, rotate=self._properties.rotate)
        if not check.matched:
            raise TokenMismatchError(
                "Presented CSRF token does not match",
                reason=RejectReason.MISMATCH.value,
                context={"scope": check.scope.value},
            )

    def _issue_tokens(self, session: Session, uri: str) -> None:
        self.prepare(session)
        if self._properties.token_per_page:
            self._store.get_or_create_token_for_page(session, uri)

    def _accept(self, request: CsrfRequest, session: Session | None, uri: str) -> ValidationResult:
        context = ActionContext(request=request, session=session, store=self._store)
        if self._dispatcher.has_actions_for(ActionEvent.SUCCESS):
            try:
                self._dispatcher.invoke(ActionEvent.SUCCESS, context)
            except FatalActionError:
                context.reason = RejectReason.ABORTED
                logger.warning(
                    "csrf_request_rejected",
                    reason=context.reason.value,
                    method=request.method,
                    path=request.path,
                )
                return self._result(Outcome.REJECTED, context)

        if is_live(session):
            assert session is not None
            self._issue_tokens(session, uri)

        logger.debug("csrf_request_accepted", method=request.method, path=request.path)
        return self._result(Outcome.ACCEPTED, context)

    def _reject(self, request: CsrfRequest, session: Session | None, reason: RejectReason) -> ValidationResult:
        context = ActionContext(request=request, session=session, reason=reason, store=self._store)
        logger.warning("csrf_request_rejected", reason=reason.value, method=request.method, path=request.path)
        with contextlib.suppress(FatalActionError):
            # context.aborted records the abort
            self._dispatcher.invoke(ActionEvent.FAILURE, context)
        return self._result(Outcome.REJECTED, context)

    def _landing_page(self, reason: RejectReason) -> ValidationResult:
        url = self._properties.new_token_landing_page
        assert url is not None
        logger.info("csrf_landing_page_redirect", reason=reason.value)
        return ValidationResult(
            Outcome.REJECTED,
            reason=reason,
            redirect_url=url,
            response=RedirectResponse(url=url, status_code=302),
        )

    @staticmethod
    def _result(outcome: Outcome, context: ActionContext) -> ValidationResult:
        return ValidationResult(
            outcome,
            reason=context.reason,
            response=context.response,
            aborted=context.aborted,
            attributes=dict(context.attributes),
            errors=tuple(context.errors),
        )
