"""
Tests for the dependency installer — idempotence, ordering, failures.
"""

from unittest.mock import patch

import pytest
from doubles import FakeRunner

from provisioner.adapters.mock import MockPackageManager
from provisioner.core.models.tooling import InstallStep, ToolSpec
from provisioner.core.services.installer import InstallError, ensure_baseline, search_path

_WHICH = "provisioner.core.services.probe.shutil.which"


def _utilities() -> ToolSpec:
    return ToolSpec(
        name="utilities",
        packages=["screen", "jq"],
        steps=[
            InstallStep(kind="refresh"),
            InstallStep(kind="packages", packages=["screen", "jq"]),
        ],
    )


def _engine_tool() -> ToolSpec:
    return ToolSpec(
        name="engine",
        packages=["engine-ce"],
        steps=[
            InstallStep(kind="repo", label="engine repo", commands=[["add-key"], ["add-source"]]),
            InstallStep(kind="packages", packages=["engine-ce"]),
        ],
    )


class TestIdempotence:
    def test_installs_missing_packages(self):
        pm = MockPackageManager()
        report = ensure_baseline([_utilities()], pm, runner=FakeRunner())

        assert report.installed == ["utilities"]
        assert pm.installed == {"screen", "jq"}
        assert pm.refresh_count == 1

    def test_second_run_does_nothing(self):
        pm = MockPackageManager()
        ensure_baseline([_utilities()], pm, runner=FakeRunner())
        pm.calls.clear()

        report = ensure_baseline([_utilities()], pm, runner=FakeRunner())

        assert report.installed == []
        assert report.skipped == ["utilities"]
        assert pm.calls == []
        assert not report.changed

    def test_only_missing_packages_installed(self):
        tool = ToolSpec(
            name="utilities",
            packages=["screen", "jq"],
            steps=[InstallStep(kind="packages", packages=["screen", "jq"])],
        )
        pm = MockPackageManager(installed={"screen"})
        ensure_baseline([tool], pm, runner=FakeRunner())

        assert pm.install_calls == [["jq"]]


class TestOrdering:
    def test_single_refresh_across_tools(self):
        other = ToolSpec(
            name="editor",
            packages=["nano"],
            steps=[InstallStep(kind="packages", packages=["nano"])],
        )
        pm = MockPackageManager()
        report = ensure_baseline([_utilities(), other], pm, runner=FakeRunner())

        assert pm.refresh_count == 1
        assert report.refreshes == 1
        assert pm.calls == ["refresh", "install:screen,jq", "install:nano"]

    def test_repo_registration_triggers_refresh_before_install(self):
        pm = MockPackageManager()
        runner = FakeRunner()
        ensure_baseline([_utilities(), _engine_tool()], pm, runner=runner)

        assert runner.calls == [["add-key"], ["add-source"]]
        assert pm.calls == ["refresh", "install:screen,jq", "refresh", "install:engine-ce"]

    def test_search_path_includes_extra_dirs(self):
        tools = [
            ToolSpec(name="a", binary="a", extra_path=["/opt/a/bin"]),
            ToolSpec(name="b", binary="b", extra_path=["/opt/a/bin", "/opt/b/bin"]),
        ]
        path = search_path(tools)
        assert path.startswith("/opt/a/bin:/opt/b/bin")


class TestCommandTools:
    def test_binary_tool_skipped_when_found(self):
        tool = ToolSpec(
            name="bitz", binary="bitz",
            steps=[InstallStep(kind="command", commands=[["cargo", "install", "bitz"]])],
        )
        runner = FakeRunner()
        with patch(_WHICH, return_value="/usr/bin/bitz"):
            report = ensure_baseline([tool], MockPackageManager(), runner=runner)

        assert report.skipped == ["bitz"]
        assert runner.calls == []

    def test_binary_tool_installed_then_verified(self):
        tool = ToolSpec(
            name="bitz", binary="bitz",
            steps=[InstallStep(kind="command", commands=[["cargo", "install", "bitz"]])],
        )
        runner = FakeRunner()
        with patch(_WHICH, side_effect=[None, "/root/.cargo/bin/bitz"]):
            report = ensure_baseline([tool], MockPackageManager(), runner=runner)

        assert report.installed == ["bitz"]
        assert runner.calls == [["cargo", "install", "bitz"]]
        assert "PATH" in runner.kwargs[0]["env_overrides"]

    def test_binary_still_missing_is_fatal(self):
        tool = ToolSpec(
            name="bitz", binary="bitz",
            steps=[InstallStep(kind="command", commands=[["cargo", "install", "bitz"]])],
        )
        with patch(_WHICH, return_value=None):
            with pytest.raises(InstallError) as exc:
                ensure_baseline([tool], MockPackageManager(), runner=FakeRunner())

        assert exc.value.step == "verify"


class TestFailures:
    def test_package_failure_names_tool_and_step(self):
        pm = MockPackageManager(fail_on={"jq"})
        with pytest.raises(InstallError) as exc:
            ensure_baseline([_utilities()], pm, runner=FakeRunner())

        assert exc.value.tool == "utilities"
        assert exc.value.step == "packages"
        assert "jq" in exc.value.detail

    def test_failure_stops_later_tools(self):
        pm = MockPackageManager()
        runner = FakeRunner(failures={"add-key": "gpg: no valid OpenPGP data found"})
        with pytest.raises(InstallError) as exc:
            ensure_baseline([_engine_tool(), _utilities()], pm, runner=runner)

        assert exc.value.step == "engine repo"
        assert runner.calls == [["add-key"]]
        assert "screen" not in pm.installed

    def test_retry_after_failure_does_remaining_work(self):
        pm = MockPackageManager(fail_on={"engine-ce"})
        with pytest.raises(InstallError):
            ensure_baseline([_utilities(), _engine_tool()], pm, runner=FakeRunner())
        assert {"screen", "jq"} <= pm.installed

        pm.fail_on.clear()
        pm.calls.clear()
        report = ensure_baseline([_utilities(), _engine_tool()], pm, runner=FakeRunner())

        assert report.skipped == ["utilities"]
        assert report.installed == ["engine"]

    def test_repo_commands_use_sudo_flag(self):
        tool = ToolSpec(
            name="engine",
            packages=["engine-ce"],
            steps=[
                InstallStep(kind="repo", commands=[["add-key"]], needs_sudo=True),
                InstallStep(kind="packages", packages=["engine-ce"]),
            ],
        )
        runner = FakeRunner()
        ensure_baseline([tool], MockPackageManager(), runner=runner)

        assert runner.kwargs[0]["needs_sudo"] is True
