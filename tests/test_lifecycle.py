"""
Tests for the lifecycle controller — deploy, verify, remove, observe.
"""

import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from doubles import FakeRunner

from provisioner.adapters.mock import MockEngine
from provisioner.core.models.deployment import DeploymentDescriptor
from provisioner.core.models.state import ServiceState, UnitStatus
from provisioner.core.services.lifecycle import InvalidTransition, LifecycleController


def _descriptor(sensitive: bool = False, content: str = "services: {}\n") -> DeploymentDescriptor:
    return DeploymentDescriptor(filename="docker-compose.yaml", content=content, sensitive=sensitive)


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    # MockEngine derives the unit name from the descriptor's directory
    return tmp_path / "chromium"


def _controller(engine, workdir, **kwargs) -> LifecycleController:
    kwargs.setdefault("sleep", lambda _s: None)
    return LifecycleController(engine, workdir, "chromium", data_dir="config", **kwargs)


class TestDeploy:
    def test_running_after_verify(self, engine, workdir):
        delays: list[float] = []
        ctl = _controller(engine, workdir, sleep=delays.append, settle_delay=5)
        result = ctl.deploy(_descriptor())

        assert result.state is ServiceState.RUNNING
        assert result.ok
        assert delays == [5]
        assert (workdir / "docker-compose.yaml").is_file()
        assert (workdir / "config").is_dir()
        assert [c[0] for c in engine.calls if c[0] != "status"] == ["down", "up"]

    def test_directory_is_private(self, engine, workdir):
        _controller(engine, workdir).deploy(_descriptor())
        assert stat.S_IMODE(workdir.stat().st_mode) == 0o700

    def test_sensitive_descriptor_is_private(self, engine, workdir):
        _controller(engine, workdir).deploy(_descriptor(sensitive=True))
        mode = stat.S_IMODE((workdir / "docker-compose.yaml").stat().st_mode)
        assert mode == 0o600

    def test_never_running_is_failed(self, workdir):
        engine = MockEngine(status_after_up=UnitStatus.STOPPED)
        result = _controller(engine, workdir, logs_hint="docker logs chromium").deploy(_descriptor())

        assert result.state is ServiceState.FAILED
        assert "stopped" in result.error
        assert result.hint == "docker logs chromium"

    def test_bring_up_failure_is_failed(self, workdir):
        engine = MockEngine(fail_up="port is already allocated")
        result = _controller(engine, workdir).deploy(_descriptor())

        assert result.state is ServiceState.FAILED
        assert "port is already allocated" in result.error

    def test_redeploy_replaces_descriptor(self, engine, workdir):
        ctl = _controller(engine, workdir)
        ctl.deploy(_descriptor(content="first: 1\n"))
        ctl.deploy(_descriptor(content="second: 2\n"))

        assert (workdir / "docker-compose.yaml").read_text() == "second: 2\n"
        assert engine.descriptors["chromium"] == "second: 2\n"

    def test_failed_can_be_redeployed(self, workdir):
        engine = MockEngine(status_after_up=UnitStatus.STOPPED)
        ctl = _controller(engine, workdir)
        assert ctl.deploy(_descriptor()).state is ServiceState.FAILED

        engine.status_after_up = UnitStatus.RUNNING
        assert ctl.deploy(_descriptor()).state is ServiceState.RUNNING

    def test_unwritable_workdir_is_failed(self, engine, workdir):
        workdir.write_text("not a directory")
        result = _controller(engine, workdir).deploy(_descriptor())

        assert result.state is ServiceState.FAILED
        assert result.error.startswith("cannot write")
        assert str(workdir) in result.hint
        assert engine.calls == [("status", "chromium")]


class TestObserve:
    def test_absent_when_nothing_on_disk(self, engine, workdir):
        assert _controller(engine, workdir).observe() is ServiceState.ABSENT

    def test_failed_when_descriptor_but_not_running(self, engine, workdir):
        workdir.mkdir()
        (workdir / "docker-compose.yaml").write_text("services: {}\n")
        assert _controller(engine, workdir).observe() is ServiceState.FAILED

    def test_running_from_engine(self, engine, workdir):
        engine.units["chromium"] = UnitStatus.RUNNING
        assert _controller(engine, workdir).observe() is ServiceState.RUNNING


class TestRemove:
    def test_decline_changes_nothing(self, engine, workdir):
        ctl = _controller(engine, workdir)
        ctl.deploy(_descriptor())
        engine.reset()

        result = ctl.remove(confirmed=False)

        assert result.cancelled
        assert result.state is ServiceState.RUNNING
        assert workdir.is_dir()
        assert ("down", "chromium") not in engine.calls

    def test_remove_deletes_everything(self, engine, workdir):
        ctl = _controller(engine, workdir)
        ctl.deploy(_descriptor())

        result = ctl.remove(confirmed=True)

        assert result.state is ServiceState.REMOVED
        assert not workdir.exists()
        assert engine.status("chromium") is UnitStatus.ABSENT

    def test_remove_when_absent_is_not_an_error(self, engine, workdir):
        result = _controller(engine, workdir).remove(confirmed=True)
        assert result.ok
        assert result.state is ServiceState.REMOVED

    def test_remove_then_deploy_has_no_residue(self, engine, workdir):
        ctl = _controller(engine, workdir)
        ctl.deploy(_descriptor(content="old: 1\n"))
        (workdir / "config" / "cache.db").write_text("stale")
        ctl.remove(confirmed=True)

        result = ctl.deploy(_descriptor(content="new: 2\n"))

        assert result.state is ServiceState.RUNNING
        assert not (workdir / "config" / "cache.db").exists()
        assert sorted(p.name for p in workdir.iterdir()) == ["config", "docker-compose.yaml"]

    def test_teardown_failures_are_warnings(self, engine, workdir):
        runner = FakeRunner(failures={"cargo uninstall": "package `bitz` is not installed"})
        ctl = _controller(engine, workdir, teardown=[["cargo", "uninstall", "bitz"]], runner=runner)
        ctl.deploy(_descriptor())

        result = ctl.remove(confirmed=True)

        assert result.ok
        assert result.state is ServiceState.REMOVED
        assert len(result.warnings) == 1
        assert runner.calls == [["cargo", "uninstall", "bitz"]]

    def test_engine_refusing_to_stop_keeps_state(self, workdir):
        engine = MockEngine()
        ctl = _controller(engine, workdir)
        ctl.deploy(_descriptor())
        engine.fail_down = "permission denied"

        result = ctl.remove(confirmed=True)

        assert not result.ok
        assert result.state is ServiceState.RUNNING
        assert workdir.is_dir()


    def test_undeletable_workdir_reports_error(self, engine, workdir, monkeypatch):
        ctl = _controller(engine, workdir)
        ctl.deploy(_descriptor())
        monkeypatch.setattr(
            "provisioner.core.persistence.files.shutil.rmtree",
            MagicMock(side_effect=PermissionError(13, "Permission denied")),
        )

        result = ctl.remove(confirmed=True)

        assert result.state is ServiceState.REMOVED
        assert "could not be deleted: Permission denied" in result.error
        assert "rm -rf" in result.hint
        assert engine.status("chromium") is UnitStatus.ABSENT


class TestTransitions:
    def test_starting_cannot_be_removed(self, engine, workdir):
        ctl = _controller(engine, workdir)
        ctl._state = ServiceState.STARTING
        with pytest.raises(InvalidTransition):
            ctl.remove(confirmed=True)
