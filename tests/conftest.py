"""
Pytest configuration and shared fixtures for the gateway tests.
"""

from __future__ import annotations

import os
from typing import List

import pytest

from ad_gateway.env_settings import get_env
from ad_gateway.ldap import DirectoryAuthenticator
from ad_gateway.middleware import get_rate_limiter
from ad_gateway.services import get_authenticator
from ad_gateway.settings import DirectoryConfig, get_directory_config

from tests.fakes import FakeDirectory, make_config

_ENV_PREFIXES = (
    "LDAP_",
    "GATEWAY_",
    "PROXY_",
    "USE_LDAP_PROXY",
    "AUTH_DIAGNOSTIC_LOGINS",
    "LOG_",
    "RATE_LIMIT_",
    "CORS_",
)

_CACHED = (get_env, get_directory_config, get_authenticator, get_rate_limiter)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the host environment and cached settings out of the tests."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    for getter in _CACHED:
        getter.cache_clear()
    yield
    for getter in _CACHED:
        getter.cache_clear()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def config() -> DirectoryConfig:
    return make_config(alt_domain_suffix="corp.alt")


@pytest.fixture
def authenticator(config, directory, sleeps) -> DirectoryAuthenticator:
    return DirectoryAuthenticator(config, connection_factory=directory.factory, sleep=sleeps.append)
