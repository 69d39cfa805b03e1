import os

import msgspec
import pytest

from dunit.logging import Entry, Log, LogLevel
from dunit.suspects import SuspectLog, SuspectMatcher


def log_line(message: str, level: LogLevel) -> str:
    return msgspec.json.encode(
        Log(
            entry=Entry(message=message, level=level),
            filename="worker.py",
            function_name="run",
            line_number=10,
            pid=1234,
        )
    ).decode()


@pytest.fixture
def suspect_log(suspect_log_path: str) -> SuspectLog:
    log = SuspectLog(suspect_log_path)
    log.clear()

    return log


def append(path: str, *lines: str):
    with open(path, "a") as logfile:
        for line in lines:
            logfile.write(line + "\n")


class TestSuspectMatcher:
    def test_error_level_entries_are_suspect(self) -> None:
        matcher = SuspectMatcher()

        suspect = matcher.match(log_line("region destroyed", LogLevel.ERROR))

        assert suspect is not None
        assert "region destroyed" in suspect
        assert "pid=1234" in suspect

    def test_lower_levels_are_not_suspect(self) -> None:
        matcher = SuspectMatcher()

        assert matcher.match(log_line("vm0 bound", LogLevel.INFO)) is None
        assert matcher.match(log_line("retrying", LogLevel.WARN)) is None

    def test_ignored_patterns_suppress_matches(self) -> None:
        matcher = SuspectMatcher()
        matcher.add_ignored(r"expected failure \d+")

        assert matcher.match(log_line("expected failure 12", LogLevel.ERROR)) is None

        matcher.remove_ignored(r"expected failure \d+")

        assert matcher.match(log_line("expected failure 12", LogLevel.ERROR)) is not None

    def test_plain_text_lines_are_matched_by_pattern(self) -> None:
        matcher = SuspectMatcher()

        assert matcher.match("SEVERE something broke") == "SEVERE something broke"
        assert matcher.match("all good") is None
        assert matcher.match("   ") is None


class TestSuspectLog:
    def test_check_consumes_and_truncates(self, suspect_log: SuspectLog) -> None:
        append(
            suspect_log.path,
            log_line("first failure", LogLevel.ERROR),
            log_line("just info", LogLevel.INFO),
        )

        suspects = suspect_log.check(SuspectMatcher())

        assert len(suspects) == 1
        assert os.path.getsize(suspect_log.path) == 0
        assert suspect_log.cursor.byte_offset == 0

        assert suspect_log.check(SuspectMatcher()) == []

    def test_partial_lines_are_left_for_the_next_read(self, suspect_log: SuspectLog) -> None:
        complete = log_line("whole", LogLevel.ERROR)

        with open(suspect_log.path, "a") as logfile:
            logfile.write(complete + "\n" + '{"entry": ')

        lines = suspect_log.read_new_lines()

        assert lines == [complete]
        assert suspect_log.cursor.byte_offset == len(complete) + 1

    def test_cursor_stays_advanced_when_truncation_fails(
        self,
        suspect_log: SuspectLog,
        monkeypatch,
    ) -> None:
        line = log_line("failure", LogLevel.ERROR)
        append(suspect_log.path, line)

        def failing_truncate(path, length):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "truncate", failing_truncate)

        assert len(suspect_log.check(SuspectMatcher())) == 1
        assert suspect_log.cursor.byte_offset == len(line) + 1
        assert suspect_log.check(SuspectMatcher()) == []

    def test_missing_file_has_no_suspects(self, tmp_path) -> None:
        log = SuspectLog(str(tmp_path / "missing.json"))

        assert log.check(SuspectMatcher()) == []

    def test_line_written_across_a_check_is_reported_once_complete(
        self,
        suspect_log: SuspectLog,
    ) -> None:
        with open(suspect_log.path, "a") as logfile:
            logfile.write("all good\nSEVERE half-written")

        assert suspect_log.check(SuspectMatcher()) == []

        with open(suspect_log.path, "rb") as logfile:
            assert logfile.read() == b"SEVERE half-written"

        with open(suspect_log.path, "a") as logfile:
            logfile.write(" line\n")

        assert suspect_log.check(SuspectMatcher()) == ["SEVERE half-written line"]
        assert os.path.getsize(suspect_log.path) == 0
