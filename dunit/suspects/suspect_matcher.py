import re
from typing import Any, Dict, Iterable, List

import msgspec

from dunit.logging import LogLevel

DEFAULT_SUSPECT_LEVELS = (
    LogLevel.ERROR,
    LogLevel.CRITICAL,
    LogLevel.FATAL,
)

DEFAULT_TEXT_PATTERNS = (
    r"\b(ERROR|CRITICAL|FATAL|SEVERE)\b",
)


class SuspectMatcher:
    """
    Decides which suspect log lines fail a run. JSON log entries are
    suspect when their level is in `levels`; any other text is suspect
    when it matches one of `text_patterns`. Ignored patterns are searched
    in the entry message (or the raw line) and win over both.
    """

    def __init__(
        self,
        levels: Iterable[LogLevel] = DEFAULT_SUSPECT_LEVELS,
        text_patterns: Iterable[str] = DEFAULT_TEXT_PATTERNS,
        ignored: Iterable[str] | None = None,
    ) -> None:
        self._levels = {level.value for level in levels}
        self._text_patterns = [re.compile(pattern) for pattern in text_patterns]
        self._ignored: Dict[str, re.Pattern] = {}

        for pattern in ignored or []:
            self.add_ignored(pattern)

    @property
    def ignored(self) -> List[str]:
        return list(self._ignored.keys())

    def add_ignored(self, pattern: str):
        self._ignored[pattern] = re.compile(pattern)

    def remove_ignored(self, pattern: str):
        self._ignored.pop(pattern, None)

    def clear_ignored(self):
        self._ignored.clear()

    def match(self, line: str) -> str | None:
        line = line.strip()
        if not line:
            return None

        try:
            record: Dict[str, Any] = msgspec.json.decode(line)

        except msgspec.DecodeError:
            record = None

        if isinstance(record, dict) and isinstance(record.get("entry"), dict):
            return self._match_log(record)

        if self._is_ignored(line):
            return None

        if any(pattern.search(line) for pattern in self._text_patterns):
            return line

        return None

    def _match_log(self, record: Dict[str, Any]) -> str | None:
        entry: Dict[str, Any] = record["entry"]
        level = entry.get("level")
        message = entry.get("message") or ""

        if level not in self._levels or self._is_ignored(message):
            return None

        return (
            f"[{level} {record.get('timestamp', '')} pid={record.get('pid', 0)} "
            f"{record.get('filename', '')}:{record.get('line_number', 0)}] {message}"
        )

    def _is_ignored(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._ignored.values())
