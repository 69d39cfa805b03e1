from .version_manager import (
    CURRENT_VERSION as CURRENT_VERSION,
    VersionManager as VersionManager,
)
