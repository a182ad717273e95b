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
"""Built-in actions.

=====================  ==========================================================
Registry name          Effect
=====================  ==========================================================
``log``                Log the event (``message``, ``level``)
``error`` / ``reject`` Respond with an error status (``code``, ``message``, ``terminate``)
``redirect``           Redirect to ``page`` (``code``)
``empty``              Respond with an empty body (``code``)
``invalidate``         Invalidate the host session
``rotate``             Rotate all of the session's tokens
``request_attribute``  Record the reason under ``attribute_name`` in the context
``session_attribute``  Record the reason under ``attribute_name`` in the session
=====================  ==========================================================
"""

from __future__ import annotations

import string
from collections.abc import Mapping
from typing import Any

import structlog
from starlette.responses import JSONResponse, RedirectResponse, Response

from csrfguard.action.types import ActionContext, ActionEvent
from csrfguard.kernel.exceptions import ConfigurationError, FatalActionError
from csrfguard.session import is_live

logger = structlog.get_logger("csrfguard.action")

DEFAULT_ATTRIBUTE_NAME = "csrfguard_error"

DEFAULT_LOG_MESSAGE = (
    "potential cross-site request forgery attack thwarted "
    "(reason={reason}, method={method}, path={path}, remote_addr={remote_addr})"
)


class _Template(dict[str, Any]):
    """format_map mapping that leaves unknown placeholders as written."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


_TEMPLATE_SAMPLE = {"reason": "mismatch", "path": "/", "method": "POST", "remote_addr": "-", "session_id": "-"}


def _check_template(template: str) -> None:
    """Reject templates with positional, attribute or index fields, or bad syntax."""
    try:
        for _literal, field_name, _spec, _conversion in string.Formatter().parse(template):
            if field_name is None:
                continue
            if not field_name.isidentifier():
                raise ValueError(f"only named fields are supported, got '{{{field_name}}}'")
        template.format_map(_Template(_TEMPLATE_SAMPLE))
    except (ValueError, KeyError, IndexError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid log message template: {exc}", code="CSRF_CONFIG_ACTION") from exc


def _flag(parameters: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = parameters.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


def _status(parameters: Mapping[str, str], default: int) -> int:
    raw = parameters.get("code")
    if raw is None:
        return default
    try:
        code = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid status code '{raw}'", code="CSRF_CONFIG_ACTION") from exc
    if not 100 <= code <= 599:
        raise ConfigurationError(f"Status code out of range: {code}", code="CSRF_CONFIG_ACTION")
    return code


class LogAction:
    """Write the event to the ``csrfguard.action`` logger.

    ``message`` may reference ``{reason}``, ``{path}``, ``{method}``,
    ``{remote_addr}`` and ``{session_id}``; it is checked at startup, so a
    template that cannot be rendered fails construction instead of losing
    log lines.
    """

    def validate_parameters(self, parameters: Mapping[str, str]) -> None:
        level = parameters.get("level", "warning").lower()
        if level not in ("debug", "info", "warning", "error", "critical"):
            raise ConfigurationError(f"Unknown log level '{level}'", code="CSRF_CONFIG_ACTION")
        template = parameters.get("message")
        if template is not None:
            _check_template(template)

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        template = parameters.get("message", DEFAULT_LOG_MESSAGE)
        message = template.format_map(_Template(context.template_values()))
        level = parameters.get("level", "warning").lower()
        getattr(logger, level)(
            message,
            csrf_event=event.value,
            reason=context.reason.value if context.reason is not None else None,
            method=context.method,
            path=context.path,
        )


class ErrorAction:
    """Answer with an error status, 403 unless ``code`` says otherwise.

    With ``terminate=true`` the action raises :class:`FatalActionError`
    after setting the response, so no further action runs.
    """

    def validate_parameters(self, parameters: Mapping[str, str]) -> None:
        _status(parameters, 403)

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        body = {"error": parameters.get("message", "CSRF token invalid")}
        if context.reason is not None:
            body["reason"] = context.reason.value
        context.response = JSONResponse(body, status_code=_status(parameters, 403))
        if _flag(parameters, "terminate"):
            raise FatalActionError("Request terminated by error action", code="CSRF_TERMINATED")


class RedirectAction:
    """Redirect the client to the configured ``page``."""

    def validate_parameters(self, parameters: Mapping[str, str]) -> None:
        if not parameters.get("page"):
            raise ConfigurationError("redirect action requires a 'page' parameter", code="CSRF_CONFIG_ACTION")
        _status(parameters, 302)

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        context.response = RedirectResponse(url=parameters["page"], status_code=_status(parameters, 302))


class EmptyAction:
    """Answer with an empty body so the client learns nothing."""

    def validate_parameters(self, parameters: Mapping[str, str]) -> None:
        _status(parameters, 200)

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        context.response = Response(content=b"", status_code=_status(parameters, 200))


class InvalidateAction:
    """Invalidate the host session, if the host session supports it."""

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        session = context.session
        if not is_live(session):
            return
        invalidate = getattr(session, "invalidate", None)
        if invalidate is None:
            raise TypeError(f"{type(session).__name__} does not support invalidate()")
        invalidate()


class RotateAction:
    """Rotate the master token and every page token of the session."""

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        if context.store is None or not is_live(context.session):
            return
        context.store.rotate_all(context.session)


class RequestAttributeAction:
    """Expose the rejection reason to downstream code via the context attributes."""

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        name = parameters.get("attribute_name", DEFAULT_ATTRIBUTE_NAME)
        context.attributes[name] = context.reason.value if context.reason is not None else event.value


class SessionAttributeAction:
    """Store the rejection reason in the host session."""

    def apply(self, event: ActionEvent, context: ActionContext, parameters: Mapping[str, str]) -> None:
        if not is_live(context.session):
            return
        assert context.session is not None
        name = parameters.get("attribute_name", DEFAULT_ATTRIBUTE_NAME)
        context.session.set_attribute(name, context.reason.value if context.reason is not None else event.value)
