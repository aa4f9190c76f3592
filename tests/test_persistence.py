"""
Tests for file persistence — modes, atomic writes, tree removal.
"""

import stat
from pathlib import Path

from provisioner.core.persistence.files import (
    ensure_private_dir,
    remove_tree,
    write_file_atomic,
    write_private_file,
)


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestPrivateDir:
    def test_created_with_owner_only_mode(self, tmp_path: Path):
        path = ensure_private_dir(tmp_path / "a" / "b")
        assert path.is_dir()
        assert _mode(path) == 0o700

    def test_existing_dir_tightened(self, tmp_path: Path):
        path = tmp_path / "loose"
        path.mkdir(mode=0o755)
        ensure_private_dir(path)
        assert _mode(path) == 0o700


class TestAtomicWrite:
    def test_public_mode(self, tmp_path: Path):
        path = tmp_path / "docker-compose.yaml"
        write_file_atomic(path, "services: {}\n")
        assert path.read_text() == "services: {}\n"
        assert _mode(path) == 0o644

    def test_private_mode(self, tmp_path: Path):
        path = tmp_path / "docker-compose.yaml"
        write_file_atomic(path, "PASSWORD: x\n", private=True)
        assert _mode(path) == 0o600

    def test_replaces_existing_without_temp_leftovers(self, tmp_path: Path):
        path = tmp_path / "d.yaml"
        write_file_atomic(path, "one\n")
        write_file_atomic(path, "two\n")

        assert path.read_text() == "two\n"
        assert [p.name for p in tmp_path.iterdir()] == ["d.yaml"]


class TestPrivateFile:
    def test_mode_and_content(self, tmp_path: Path):
        path = tmp_path / "private-key.txt"
        write_private_file(path, "secret\n")
        assert path.read_text() == "secret\n"
        assert _mode(path) == 0o600

    def test_shorter_content_truncates(self, tmp_path: Path):
        path = tmp_path / "private-key.txt"
        write_private_file(path, "a much longer secret\n")
        write_private_file(path, "short\n")
        assert path.read_text() == "short\n"


class TestRemoveTree:
    def test_removes(self, tmp_path: Path):
        target = tmp_path / "chromium"
        (target / "config").mkdir(parents=True)
        (target / "config" / "file").write_text("x")

        assert remove_tree(target)
        assert not target.exists()

    def test_missing_is_false(self, tmp_path: Path):
        assert not remove_tree(tmp_path / "absent")
