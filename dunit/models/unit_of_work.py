from typing import Any, Callable, Dict, Tuple


class UnitOfWork:
    """
    A callable (or an object plus the name of one of its methods) and the
    arguments to call it with, shipped to a worker with cloudpickle.
    """

    __slots__ = (
        "target",
        "method_name",
        "args",
        "kwargs",
    )

    def __init__(
        self,
        target: Callable[..., Any] | Any,
        method_name: str | None = None,
        args: Tuple[Any, ...] | None = None,
        kwargs: Dict[str, Any] | None = None,
    ) -> None:
        if method_name is None and not callable(target):
            raise TypeError(f"Err. - {target!r} is not callable and no method name was given")

        self.target = target
        self.method_name = method_name
        self.args = args or ()
        self.kwargs = kwargs or {}

    @property
    def name(self) -> str:
        if self.method_name:
            return f"{type(self.target).__name__}.{self.method_name}"

        return getattr(self.target, "__qualname__", repr(self.target))

    def resolve(self) -> Callable[..., Any]:
        if self.method_name is None:
            return self.target

        return getattr(self.target, self.method_name)

    def __getstate__(self):
        return (self.target, self.method_name, self.args, self.kwargs)

    def __setstate__(self, state):
        self.target, self.method_name, self.args, self.kwargs = state
