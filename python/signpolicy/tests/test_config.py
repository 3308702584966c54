"""Tests for environment-driven settings."""

import logging

import pytest
from signpolicy.config import Settings, configure_logging


def test_defaults() -> None:
    s = Settings()
    assert s.enforcer_namespace == "integrity-verifier-operator-system"
    assert s.policy_files == []


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIGNPOLICY_ENFORCER_NAMESPACE", "iv-system")
    monkeypatch.setenv("SIGNPOLICY_POLICY_FILES", '["/etc/iv/a.yaml", "/etc/iv/b.yaml"]')
    s = Settings()
    assert s.enforcer_namespace == "iv-system"
    assert s.policy_files == ["/etc/iv/a.yaml", "/etc/iv/b.yaml"]


def test_configure_logging() -> None:
    configure_logging("debug")
    assert logging.getLogger("signpolicy").level == logging.DEBUG
    configure_logging("not-a-level")
    assert logging.getLogger("signpolicy").level == logging.INFO
