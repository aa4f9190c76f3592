"""
Shared test fixtures and configuration.

Nothing here touches the real host: engines and package managers are
the in-package mocks, commands go through FakeRunner, and the home
directory is a tmp_path.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from doubles import FakeRunner

from provisioner.adapters.mock import MockEngine, MockPackageManager
from provisioner.core.config.loader import Settings


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(home: Path) -> Settings:
    return Settings(home=home, settle_delay=0)


@pytest.fixture
def engine() -> MockEngine:
    return MockEngine()


@pytest.fixture
def pm() -> MockPackageManager:
    return MockPackageManager()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def no_sleep():
    delays: list[float] = []
    return delays.append
