"""Shared test fixtures for rcwalk tests."""

from __future__ import annotations

import json
import logging
import pathlib

import pytest

import rcwalk.config


@pytest.fixture
def tmp_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """Symlink-free tmp dir, matching the resolved paths discovery returns."""
    return tmp_path.resolve()


@pytest.fixture(autouse=True)
def restore_rcwalk_logger():
    """Undo handlers and levels the CLI installs on the ``rcwalk`` logger."""
    logger = logging.getLogger("rcwalk")
    handlers, level = logger.handlers[:], logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture(autouse=True)
def isolated_global_config(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch):
    """Point the user-wide config file into the test's tmp dir."""
    global_toml = tmp_path / "global_config" / "config.toml"
    monkeypatch.setattr(rcwalk.config, "_global_path", lambda: global_toml)
    return global_toml


@pytest.fixture
def rc_tree(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create ``a/.lvimrc``, ``a/b/.lvimrc`` and ``a/b/c/file.txt``.

    Returns the ``a`` directory.
    """
    a = tmp_path / "a"
    c = a / "b" / "c"
    c.mkdir(parents=True)
    (a / ".lvimrc").write_text("settings['order'] = settings.get('order', []) + ['a']\n")
    (a / "b" / ".lvimrc").write_text(
        "settings['order'] = settings.get('order', []) + ['b']\n"
    )
    (c / "file.txt").write_text("hello\n")
    return a


@pytest.fixture
def write_rc(tmp_path: pathlib.Path):
    """Factory writing a ``.localrc`` with *body* into ``tmp_path / rel``."""

    def _create(rel: str, body: str) -> pathlib.Path:
        directory = tmp_path / rel
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / ".localrc"
        path.write_text(body)
        return path

    return _create


@pytest.fixture
def settings_file(tmp_path: pathlib.Path):
    """Factory for creating a settings.local.json file."""

    def _create(settings: dict | None = None) -> pathlib.Path:
        claude_dir = tmp_path / ".claude"
        claude_dir.mkdir(parents=True, exist_ok=True)
        path = claude_dir / "settings.local.json"
        if settings is None:
            settings = {"hooks": {}}
        path.write_text(json.dumps(settings, indent=2))
        return path

    return _create


@pytest.fixture
def git_project(tmp_path: pathlib.Path) -> pathlib.Path:
    """A git checkout at ``tmp_path / "project"`` with its own rcwalk config.

    The config selects ``.projrc`` without asking; ``project/.projrc`` sets
    ``settings["project"]``. ``tmp_path / "elsewhere"`` is an unrelated
    directory to run from.
    """
    project = tmp_path / "project"
    (project / ".git").mkdir(parents=True)
    (project / "src").mkdir()
    config = project / ".rcwalk" / "config.toml"
    config.parent.mkdir()
    config.write_text('[search]\ntarget_filename = ".projrc"\nask = false\n')
    (project / ".projrc").write_text("settings['project'] = True\n")
    (tmp_path / "elsewhere").mkdir()
    return project
