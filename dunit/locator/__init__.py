from .locator_message import LocatorMessage as LocatorMessage
from .locator_service import (
    LocatorService as LocatorService,
    query_locator as query_locator,
    start_locator_service as start_locator_service,
    stop_locator_service as stop_locator_service,
)
