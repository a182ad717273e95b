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
"""Tests for CsrfGuardProperties and its nested models."""

import pytest
from pydantic import ValidationError

from csrfguard.config.properties import ActionProperties, CsrfGuardProperties, PageRuleProperties


class TestDefaults:
    def test_defaults(self):
        props = CsrfGuardProperties()
        assert props.token_name == "OWASP_CSRFGUARD"
        assert props.token_length == 32
        assert props.token_alphabet == "base64url"
        assert props.token_carrier == "parameter"
        assert props.rotate is False
        assert props.token_per_page is False
        assert props.protect is False
        assert props.ajax_header == "X-Requested-With"
        assert props.storage == "session"
        assert props.actions == []

    def test_frozen(self):
        props = CsrfGuardProperties()
        with pytest.raises(ValidationError):
            props.rotate = True  # type: ignore[misc]


class TestLandingPage:
    def test_disabled_without_page(self):
        props = CsrfGuardProperties()
        assert props.use_new_token_landing_page is False
        assert props.landing_page_enabled is False

    def test_enabled_by_default_when_page_set(self):
        props = CsrfGuardProperties(new_token_landing_page="/welcome")
        assert props.use_new_token_landing_page is True
        assert props.landing_page_enabled is True

    def test_explicit_off_wins(self):
        props = CsrfGuardProperties(new_token_landing_page="/welcome", use_new_token_landing_page=False)
        assert props.landing_page_enabled is False

    def test_flag_without_page_is_inert(self):
        assert CsrfGuardProperties(use_new_token_landing_page=True).landing_page_enabled is False


class TestValidation:
    @pytest.mark.parametrize("length", [0, 7, 513])
    def test_token_length_bounds(self, length):
        with pytest.raises(ValidationError):
            CsrfGuardProperties(token_length=length)

    def test_unknown_alphabet(self):
        with pytest.raises(ValidationError):
            CsrfGuardProperties(token_alphabet="base32")

    def test_unknown_action_event(self):
        with pytest.raises(ValidationError):
            ActionProperties(name="log", events=["sometimes"])


class TestMethods:
    def test_comma_separated_methods(self):
        assert CsrfGuardProperties(protected_methods="post, Put,,delete").protected_methods == ["POST", "PUT", "DELETE"]

    def test_rule_methods_upper_cased(self):
        assert PageRuleProperties(pattern="/a", methods=["post", " "]).methods == ["POST"]


class TestPageRules:
    def test_bare_string_accepted(self):
        props = CsrfGuardProperties(protected_pages=["/form", {"pattern": "/api/*", "methods": ["post"]}])
        assert props.protected_pages[0].pattern == "/form"
        assert props.protected_pages[1].methods == ["POST"]

    def test_precreate_pages_only_concrete_uris(self):
        props = CsrfGuardProperties(protected_pages=["/form1", "/api/*", "*.do", "^/x$", "/form2"])
        assert props.precreate_pages == ["/form1", "/form2"]


class TestActionProperties:
    def test_type_defaults_to_name(self):
        assert ActionProperties(name="log").action_type == "log"
        assert ActionProperties(name="deny", type="error").action_type == "error"

    def test_parameters_stringified(self):
        assert ActionProperties(name="error", parameters={"code": 401, "terminate": True}).parameters == {
            "code": "401",
            "terminate": "True",
        }

    def test_default_event_is_failure(self):
        assert ActionProperties(name="log").events == ["failure"]
