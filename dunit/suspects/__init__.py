from .suspect_log import (
    SuspectLog as SuspectLog,
    SuspectLogCursor as SuspectLogCursor,
)
from .suspect_matcher import SuspectMatcher as SuspectMatcher
