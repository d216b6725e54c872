"""
Unit tests for ad_gateway.ldap.utils.
"""

import pytest

from ad_gateway.ldap.errors import ConnectionFailure, UserNotFound
from ad_gateway.ldap.utils import (
    bind_dn_forms,
    escape_ldap_filter_value,
    first_success,
    normalize_bind_dn,
    principal_name,
)


class TestEscaping:
    def test_plain_value_unchanged(self):
        assert escape_ldap_filter_value("jdoe") == "jdoe"

    def test_special_characters_escaped(self):
        assert escape_ldap_filter_value("*)(uid=*") == "\\2a\\29\\28uid=\\2a"

    def test_backslash_and_nul(self):
        assert escape_ldap_filter_value("a\\b\x00") == "a\\5cb\\00"


class TestBindDnForms:
    def test_doubled_backslash_normalized_first(self):
        assert bind_dn_forms("CORP\\\\svc") == ["CORP\\svc", "CORP\\\\svc"]

    def test_identical_forms_tried_once(self):
        assert bind_dn_forms("CN=svc,DC=corp,DC=local") == ["CN=svc,DC=corp,DC=local"]

    def test_empty(self):
        assert bind_dn_forms("") == []

    def test_normalize(self):
        assert normalize_bind_dn("A\\\\B\\\\C") == "A\\B\\C"


def test_principal_name():
    assert principal_name("jdoe", "corp.local") == "jdoe@corp.local"
    assert principal_name("jdoe", ".corp.local.") == "jdoe@corp.local"
    assert principal_name("jdoe", "") == "jdoe"


class TestFirstSuccess:
    def test_returns_first_success(self):
        tried = []

        def attempt(x):
            tried.append(x)
            if x < 3:
                raise UserNotFound("no")
            return x * 10

        assert first_success([1, 2, 3, 4], attempt, recoverable=(UserNotFound,)) == (3, 30)
        assert tried == [1, 2, 3]

    def test_exhausted_raises_last(self):
        def attempt(x):
            raise UserNotFound(f"miss {x}")

        with pytest.raises(UserNotFound, match="miss c"):
            first_success("abc", attempt, recoverable=(UserNotFound,))

    def test_non_recoverable_propagates_immediately(self):
        tried = []

        def attempt(x):
            tried.append(x)
            raise ConnectionFailure("down")

        with pytest.raises(ConnectionFailure):
            first_success([1, 2], attempt, recoverable=(UserNotFound,))
        assert tried == [1]

    def test_on_failure_called_per_candidate(self):
        seen = []

        def attempt(x):
            raise UserNotFound(str(x))

        with pytest.raises(UserNotFound):
            first_success([1, 2], attempt, recoverable=(UserNotFound,), on_failure=lambda c, e: seen.append(c))
        assert seen == [1, 2]

    def test_no_candidates(self):
        with pytest.raises(LookupError):
            first_success([], lambda x: x, recoverable=(UserNotFound,))
