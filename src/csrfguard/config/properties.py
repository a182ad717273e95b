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
"""csrfguard configuration properties (csrfguard.*)."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from csrfguard.core.config import config_properties


class PageRuleProperties(BaseModel):
    """One protected or unprotected page pattern.

    A bare string in configuration is accepted as ``{"pattern": <string>}``.
    """

    pattern: str
    methods: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"pattern": value}
        return value

    @field_validator("methods")
    @classmethod
    def _upper_methods(cls, value: list[str]) -> list[str]:
        return [m.strip().upper() for m in value if m.strip()]


class ActionProperties(BaseModel):
    """One configured action.

    Attributes:
        name: Instance name, used in logs.
        type: Registry key of the action implementation; defaults to *name*.
        parameters: Free-form parameter map handed to the action.
        events: Validation events the action reacts to.
    """

    name: str
    type: str | None = None
    parameters: dict[str, str] = Field(default_factory=dict)
    events: list[Literal["failure", "success"]] = Field(default_factory=lambda: ["failure"])

    @field_validator("parameters", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @property
    def action_type(self) -> str:
        return self.type or self.name


@config_properties(prefix="csrfguard")
class CsrfGuardProperties(BaseModel):
    """Configuration for the CSRF guard (csrfguard.*).

    Read-only once an engine has been built from it.
    """

    model_config = {"frozen": True}

    token_name: str = "OWASP_CSRFGUARD"
    token_length: int = Field(default=32, ge=8, le=512)
    token_alphabet: Literal["base64url", "hex"] = "base64url"
    token_carrier: Literal["parameter", "header"] = "parameter"
    rotate: bool = False
    token_per_page: bool = False
    token_per_page_precreate: bool = False
    max_page_tokens: int = Field(default=256, ge=1)
    new_token_landing_page: str | None = None
    use_new_token_landing_page: bool = False
    ajax: bool = False
    ajax_header: str = "X-Requested-With"
    ajax_header_value: str = "OWASP CSRFGuard Project"
    protect: bool = False
    session_key: str = "OWASP_CSRFGUARD_KEY"
    protected_pages: list[PageRuleProperties] = Field(default_factory=list)
    unprotected_pages: list[PageRuleProperties] = Field(default_factory=list)
    protected_methods: list[str] = Field(default_factory=list)
    actions: list[ActionProperties] = Field(default_factory=list)
    storage: Literal["session", "memory"] = "session"
    storage_ttl: int = Field(default=1800, ge=1)
    storage_max_entries: int = Field(default=10000, ge=1)

    @field_validator("protected_methods", mode="before")
    @classmethod
    def _split_methods(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [str(m).strip().upper() for m in value if str(m).strip()]
        return value

    @model_validator(mode="before")
    @classmethod
    def _landing_page_default(cls, value: Any) -> Any:
        # Landing page use defaults to on when a page is set, off otherwise.
        if isinstance(value, dict) and value.get("use_new_token_landing_page") is None:
            value = {**value, "use_new_token_landing_page": value.get("new_token_landing_page") is not None}
        return value

    @property
    def landing_page_enabled(self) -> bool:
        return bool(self.use_new_token_landing_page and self.new_token_landing_page)

    @property
    def precreate_pages(self) -> list[str]:
        """Protected page patterns that name a single concrete URI."""
        return [
            rule.pattern
            for rule in self.protected_pages
            if rule.pattern.startswith("/") and "*" not in rule.pattern
        ]
