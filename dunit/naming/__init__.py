from .name_listing import NameListing as NameListing
from .naming_directory import (
    NAMING_DIRECTORY_NAME as NAMING_DIRECTORY_NAME,
    NamingDirectory as NamingDirectory,
)
