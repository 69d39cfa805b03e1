import os
import sys

import pytest

from dunit.env import Env, TimeParser, load_env
from dunit.versions import CURRENT_VERSION, VersionManager


class TestTimeParser:
    @pytest.mark.parametrize(
        "amount,seconds",
        [
            ("120s", 120),
            ("0.25s", 0.25),
            ("1m", 60),
            ("1m30s", 90),
            ("500ms", 0.5),
            ("2", 2),
            (3, 3),
        ],
    )
    def test_parses_durations(self, amount, seconds) -> None:
        assert TimeParser(amount).time == pytest.approx(seconds)

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            TimeParser("soon")


class TestLoadEnv:
    def test_reads_process_environment(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DUNIT_NUM_VMS", "6")
        monkeypatch.setenv("DUNIT_MAKE_NEW_WORKING_DIRS", "true")

        env = load_env(Env)

        assert env.DUNIT_NUM_VMS == 6
        assert env.DUNIT_MAKE_NEW_WORKING_DIRS is True

    def test_env_file_overrides_process_environment(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setenv("DUNIT_NUM_VMS", "6")

        env_file = tmp_path / ".env"
        env_file.write_text("DUNIT_NUM_VMS=3\nDUNIT_MASTER=coordinator\n")

        env = load_env(Env, env_file=str(env_file))

        assert env.DUNIT_NUM_VMS == 3
        assert env.DUNIT_MASTER == "coordinator"

    def test_explicit_override_wins(self, monkeypatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DUNIT_NUM_VMS", "6")

        env = load_env(Env, override=Env(DUNIT_NUM_VMS=1))

        assert env.DUNIT_NUM_VMS == 1


class TestLaunchParameters:
    def test_launch_parameters_are_strings(self, workspace: str) -> None:
        env = Env(
            DUNIT_WORKSPACE_DIR=workspace,
            DUNIT_VM_NUM=2,
            DUNIT_HANDLE_SIGNALS=False,
        )

        parameters = env.to_launch_parameters()

        assert parameters["DUNIT_VM_NUM"] == "2"
        assert parameters["DUNIT_HANDLE_SIGNALS"] == "false"
        assert parameters["DUNIT_WORKSPACE_DIR"] == workspace
        assert "DUNIT_LAUNCH_ID" not in parameters

    def test_launch_parameters_round_trip_through_the_environment(
        self,
        monkeypatch,
        tmp_path,
    ) -> None:
        monkeypatch.chdir(tmp_path)

        source = Env(DUNIT_VM_NUM=-2, DUNIT_LAUNCH_ID="abc", DUNIT_LOCATOR_PORT=10334)
        for name, value in source.to_launch_parameters().items():
            monkeypatch.setenv(name, value)

        loaded = load_env(Env)

        assert loaded.DUNIT_VM_NUM == -2
        assert loaded.DUNIT_LAUNCH_ID == "abc"
        assert loaded.DUNIT_LOCATOR_PORT == 10334

    def test_suspect_log_path_prefers_the_logs_directory(self, workspace: str) -> None:
        env = Env(DUNIT_WORKSPACE_DIR=workspace)
        assert env.suspect_log_path() == os.path.join(workspace, "dunit_suspect.json")

        env = Env(DUNIT_WORKSPACE_DIR=workspace, DUNIT_LOGS_DIRECTORY="/var/log/dunit")
        assert env.suspect_log_path() == "/var/log/dunit/dunit_suspect.json"


class TestVersionManager:
    def test_current_version_runs_under_this_interpreter(self) -> None:
        versions = VersionManager()

        assert versions.has_version(CURRENT_VERSION)
        assert versions.get_executable(CURRENT_VERSION) == sys.executable

    def test_versions_are_read_from_env(self, workspace: str) -> None:
        env = Env(
            DUNIT_WORKSPACE_DIR=workspace,
            DUNIT_VERSION_EXECUTABLES="110=/opt/py110/bin/python, 120=/opt/py120/bin/python",
        )

        versions = VersionManager.from_env(env)

        assert versions.get_executable("110") == "/opt/py110/bin/python"
        assert versions.get_executable("120") == "/opt/py120/bin/python"
        assert sorted(versions.versions) == ["000", "110", "120"]

    def test_unknown_versions_raise(self) -> None:
        with pytest.raises(KeyError):
            VersionManager().get_executable("999")

    def test_current_version_cannot_be_remapped(self) -> None:
        with pytest.raises(ValueError):
            VersionManager().register(CURRENT_VERSION, "/usr/bin/python3")
