import functools

from .hook_type import HookType


def remote():
    def wraps(func):
        func.hook_type = HookType.REMOTE

        @functools.wraps(func)
        def decorator(*args, **kwargs):
            return func(*args, **kwargs)

        return decorator

    return wraps
