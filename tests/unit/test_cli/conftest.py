"""Shared fixtures for CLI command tests."""

import os

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No RAGE_* variables and no project config file in the working directory."""
    for name in list(os.environ):
        if name.startswith("RAGE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def configured_env(clean_env, monkeypatch):
    """Complete connection settings supplied through the environment."""
    monkeypatch.setenv("RAGE_VECTORIZE_URI", "https://api.example.com/v1")
    monkeypatch.setenv("RAGE_VECTORIZE_ORGANIZATION_ID", "org-123")
    monkeypatch.setenv("RAGE_VECTORIZE_PIPELINE_ID", "pipe-456")
    monkeypatch.setenv("RAGE_VECTORIZE_API_KEY", "cli-test-key-0001")
    monkeypatch.setenv("RAGE_METRICS_ENABLED", "false")
    return clean_env
