"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os
import typing as typ

import pytest

from lookout.config import LookoutConfig, ValidationSettings

if typ.TYPE_CHECKING:
    from pathlib import Path

_ISOLATED_PREFIXES = ("GITHUB_", "LOOKOUT_")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide CI and Lookout variables so tests do not depend on the runner."""
    for key in list(os.environ):
        if key.startswith(_ISOLATED_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def playbook_repo(tmp_path: Path) -> Path:
    """Create a working copy with two playbooks and a role."""
    playbooks = tmp_path / "playbooks"
    playbooks.mkdir()
    (playbooks / "hello.yml").write_text("---\n- hosts: localhost\n", encoding="utf-8")
    (playbooks / "goodbye.yaml").write_text(
        "---\n- hosts: localhost\n", encoding="utf-8"
    )
    tasks = tmp_path / "roles" / "common" / "tasks"
    tasks.mkdir(parents=True)
    (tasks / "main.yml").write_text("---\n[]\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def repo_config(playbook_repo: Path) -> LookoutConfig:
    """Return a default configuration rooted at ``playbook_repo``."""
    return LookoutConfig(validation=ValidationSettings(root=str(playbook_repo)))
