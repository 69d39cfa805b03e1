import os
from typing import List

from .suspect_matcher import SuspectMatcher


class SuspectLogCursor:
    __slots__ = ("path", "byte_offset")

    def __init__(self, path: str, byte_offset: int = 0) -> None:
        self.path = path
        self.byte_offset = byte_offset

    def __repr__(self) -> str:
        return f"SuspectLogCursor({self.path}, byte_offset={self.byte_offset})"


class SuspectLog:
    """
    The file every fleet process appends its framework log lines to.
    Each check consumes complete lines past the cursor, then truncates
    the file so the next test starts from an empty log. A trailing line
    that is still being written survives the truncation and is checked
    once it is complete.
    """

    def __init__(self, path: str) -> None:
        self.cursor = SuspectLogCursor(os.path.abspath(path))

    @property
    def path(self) -> str:
        return self.cursor.path

    def clear(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self.path, "wb"):
            pass

        self.cursor.byte_offset = 0

    def read_new_lines(self) -> List[str]:
        if not os.path.exists(self.path):
            return []

        with open(self.path, "rb") as logfile:
            logfile.seek(self.cursor.byte_offset)
            data = logfile.read()

        consumed = data.rfind(b"\n") + 1
        self.cursor.byte_offset += consumed

        return data[:consumed].decode(errors="replace").splitlines()

    def truncate(self) -> bool:
        """
        Drop everything before the cursor. Bytes past it (a line still
        being written) move to the start of the file.
        """
        try:
            if os.path.exists(self.path):
                with open(self.path, "rb") as logfile:
                    logfile.seek(self.cursor.byte_offset)
                    tail = logfile.read()

                os.truncate(self.path, 0)

                if tail:
                    with open(self.path, "ab") as logfile:
                        logfile.write(tail)

        except OSError:
            return False

        self.cursor.byte_offset = 0

        return True

    def check(self, matcher: SuspectMatcher) -> List[str]:
        suspects = [
            suspect
            for suspect in (matcher.match(line) for line in self.read_new_lines())
            if suspect is not None
        ]

        self.truncate()

        return suspects
