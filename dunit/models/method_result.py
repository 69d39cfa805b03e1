import traceback
from typing import Any, Generic, TypeVar

import cloudpickle

T = TypeVar("T")


class MethodResult(Generic[T]):
    """
    Outcome of a unit of work executed inside a worker: either the returned
    value or the captured failure. Never raised across the process boundary.
    """

    __slots__ = (
        "value",
        "exception",
        "exception_type",
        "message",
        "stack_trace",
    )

    def __init__(
        self,
        value: T | None = None,
        exception: BaseException | None = None,
        exception_type: str | None = None,
        message: str | None = None,
        stack_trace: str | None = None,
    ) -> None:
        self.value = value
        self.exception = exception
        self.exception_type = exception_type
        self.message = message
        self.stack_trace = stack_trace

    @property
    def failed(self) -> bool:
        return self.exception_type is not None

    @classmethod
    def success(cls, value: T):
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException):
        exception: BaseException | None = error

        try:
            cloudpickle.dumps(error)

        except Exception:
            # Only the text survives for exceptions that cannot be shipped.
            exception = None

        return cls(
            exception=exception,
            exception_type=f"{type(error).__module__}.{type(error).__qualname__}",
            message=str(error),
            stack_trace="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        )

    def get(self) -> Any:
        if self.failed and self.exception is not None:
            raise self.exception

        return self.value

    def __getstate__(self):
        return {name: getattr(self, name) for name in self.__slots__}

    def __setstate__(self, state: dict):
        for name in self.__slots__:
            setattr(self, name, state.get(name))

    def __repr__(self) -> str:
        if self.failed:
            return f"MethodResult(failure={self.exception_type}: {self.message})"

        return f"MethodResult(value={self.value!r})"
