"""Common pytest configuration."""

import os

import pytest

_ENV_PREFIXES = ("OPENAI_", "COPYDESK_")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host copydesk and backend settings out of every test."""
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(name)
