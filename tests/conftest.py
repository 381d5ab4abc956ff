from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest

from tests.helpers.graph_fixtures import graph_fixture_path


def _clear_clarity_env() -> None:
    for key in list(os.environ):
        if key.startswith("CLARITY_"):
            os.environ.pop(key, None)


_clear_clarity_env()


@pytest.fixture(autouse=True)
def clear_clarity_env() -> Generator[None, None, None]:
    _clear_clarity_env()
    yield
    _clear_clarity_env()


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty directory so no ``config/clarity.yaml`` is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def web_stack_path() -> Path:
    return graph_fixture_path("web_stack.json")
