import traceback
from typing import Any


class Response:
    __slots__ = (
        "request_id",
        "ok",
        "value",
        "error",
        "error_type",
        "message",
        "stack_trace",
    )

    def __init__(
        self,
        request_id: str | None,
        ok: bool = True,
        value: Any = None,
        error: BaseException | None = None,
        error_type: str | None = None,
        message: str | None = None,
        stack_trace: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.ok = ok
        self.value = value
        self.error = error
        self.error_type = error_type
        self.message = message
        self.stack_trace = stack_trace

    @classmethod
    def from_error(cls, request_id: str | None, error: BaseException):
        return cls(
            request_id,
            ok=False,
            error=error,
            error_type=f"{type(error).__module__}.{type(error).__qualname__}",
            message=str(error),
            stack_trace="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        )

    def without_error_object(self):
        return Response(
            self.request_id,
            ok=False,
            error_type=self.error_type,
            message=self.message,
            stack_trace=self.stack_trace,
        )

    def __getstate__(self):
        return (
            self.request_id,
            self.ok,
            self.value,
            self.error,
            self.error_type,
            self.message,
            self.stack_trace,
        )

    def __setstate__(self, state):
        (
            self.request_id,
            self.ok,
            self.value,
            self.error,
            self.error_type,
            self.message,
            self.stack_trace,
        ) = state
