"""Shared fixtures for reqr tests."""

import json

import pytest
from click.testing import CliRunner

from reqr import core
from reqr.executor import ResponseEnvelope


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path, monkeypatch):
    """Run the test from inside an empty temporary directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def global_reqr_dir(tmp_path, monkeypatch):
    """Override the global ~/.reqr directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".reqr"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Keep REQR_* variables from the developer's shell out of the tests."""
    for name in ("REQR_TIMEOUT", "REQR_STYLE", "REQR_VERIFY"):
        monkeypatch.delenv(name, raising=False)


def make_response(
    status_code=200,
    body=b"",
    headers=None,
    reason="OK",
    elapsed_ms=42.0,
):
    """Factory for ResponseEnvelope objects. dict/list/str bodies are encoded."""
    if isinstance(body, dict | list):
        body = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        body = body.encode("utf-8")
    return ResponseEnvelope(
        status_code=status_code,
        reason=reason,
        headers=headers or {},
        body=body,
        elapsed_ms=elapsed_ms,
    )
