from typing import Any, Dict, Tuple


class Request:
    __slots__ = (
        "request_id",
        "object_name",
        "export_id",
        "method",
        "args",
        "kwargs",
    )

    def __init__(
        self,
        request_id: str,
        object_name: str,
        export_id: str,
        method: str,
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> None:
        self.request_id = request_id
        self.object_name = object_name
        self.export_id = export_id
        self.method = method
        self.args = args
        self.kwargs = kwargs

    def __getstate__(self):
        return (
            self.request_id,
            self.object_name,
            self.export_id,
            self.method,
            self.args,
            self.kwargs,
        )

    def __setstate__(self, state):
        (
            self.request_id,
            self.object_name,
            self.export_id,
            self.method,
            self.args,
            self.kwargs,
        ) = state
