import os

import pytest

from src.gpg_bridge.errors import ExecutableNotFound
from src.gpg_bridge.gpg import locator as locator_module
from src.gpg_bridge.gpg.locator import GpgLocator


def _make_executable(path):
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    os.chmod(path, 0o755)
    return path


@pytest.fixture(autouse=True)
def no_path_lookup(monkeypatch):
    monkeypatch.setattr(locator_module.shutil, "which", lambda name: None)


def test_configured_path_wins(tmp_path):
    configured = _make_executable(tmp_path / "my-gpg")
    fallback = _make_executable(tmp_path / "gpg")

    loc = GpgLocator(str(configured), locations=[str(fallback)])
    assert loc.find_gpg_path() == str(configured)


def test_path_lookup_used_before_well_known_locations(tmp_path, monkeypatch):
    on_path = _make_executable(tmp_path / "gpg-on-path")
    fallback = _make_executable(tmp_path / "gpg")
    monkeypatch.setattr(
        locator_module.shutil, "which", lambda name: str(on_path) if name == "gpg" else None
    )

    loc = GpgLocator(locations=[str(fallback)])
    assert loc.find_gpg_path() == str(on_path)


def test_falls_back_to_first_existing_executable(tmp_path):
    not_executable = tmp_path / "plain"
    not_executable.write_text("", encoding="utf-8")
    os.chmod(not_executable, 0o644)
    good = _make_executable(tmp_path / "gpg")

    loc = GpgLocator(locations=[str(tmp_path / "missing"), str(not_executable), str(good)])
    assert loc.find_gpg_path() == str(good)


def test_not_found_returns_none_and_is_retried(tmp_path):
    target = tmp_path / "gpg"
    loc = GpgLocator(locations=[str(target)])

    assert loc.find_gpg_path() is None
    _make_executable(target)
    assert loc.find_gpg_path() == str(target)


def test_success_is_memoized(tmp_path):
    target = _make_executable(tmp_path / "gpg")
    loc = GpgLocator(locations=[str(target)])

    assert loc.find_gpg_path() == str(target)
    target.unlink()
    assert loc.find_gpg_path() == str(target)


def test_require_raises_when_missing(tmp_path):
    loc = GpgLocator(locations=[str(tmp_path / "missing")])
    with pytest.raises(ExecutableNotFound):
        loc.require_gpg_path()
