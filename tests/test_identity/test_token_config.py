"""Tests for TokenConfig from environment."""

import os

import pytest

from educonnect.identity import TokenConfig
from educonnect.identity.passwords import hash_password, verify_password


def test_config_requires_secret():
    with pytest.raises(ValueError, match="JWT_SECRET"):
        with _env({}):
            TokenConfig.from_environ()


def test_config_rejects_blank_secret():
    with pytest.raises(ValueError, match="JWT_SECRET"):
        with _env({"JWT_SECRET": "   "}):
            TokenConfig.from_environ()


def test_config_from_environ_defaults():
    with _env({"JWT_SECRET": "s3cret"}):
        cfg = TokenConfig.from_environ()
    assert cfg.secret == "s3cret"
    assert cfg.algorithm == "HS256"
    assert cfg.issuer == "educonnect"
    assert cfg.ttl_minutes == 1440
    assert cfg.clock_skew_seconds == 30


def test_config_overrides():
    env = {
        "JWT_SECRET": "s3cret",
        "JWT_ISSUER": "edu-test",
        "JWT_TTL_MINUTES": "15",
        "CLOCK_SKEW_SECONDS": "not-a-number",
    }
    with _env(env):
        cfg = TokenConfig.from_environ()
    assert cfg.issuer == "edu-test"
    assert cfg.ttl_minutes == 15
    assert cfg.clock_skew_seconds == 30


def test_direct_construction_requires_secret():
    with pytest.raises(ValueError):
        TokenConfig(secret="")


def test_password_hash_roundtrip():
    hashed = hash_password("pa55word!")
    assert hashed != "pa55word!"
    assert verify_password("pa55word!", hashed)
    assert not verify_password("wrong", hashed)


def _env(env: dict):
    class _Env:
        def __enter__(self):
            self._saved = os.environ.copy()
            os.environ.clear()
            os.environ.update(env)
            return self

        def __exit__(self, *args):
            os.environ.clear()
            os.environ.update(self._saved)
            return False

    return _Env()
