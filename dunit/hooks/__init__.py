from .hook_type import HookType as HookType
from .remote import remote as remote
