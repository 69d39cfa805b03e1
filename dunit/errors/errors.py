"""
Exceptions raised by the dunit fleet orchestrator.

Infrastructure failures (spawn errors, barrier timeouts, unbound names,
unreachable endpoints) are raised to the caller. Failures of code executed
inside a worker are returned as data in a MethodResult and only become
exceptions when a driver asks for them via VM.invoke().
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dunit.models import MethodResult


class DUnitError(Exception):
    """Base class for every error raised by dunit."""
    pass


class LaunchError(DUnitError):
    """A worker process could not be spawned. Fatal for a bootstrap."""
    pass


class StartupTimeoutError(DUnitError):
    """The readiness barrier was not satisfied within its timeout."""

    def __init__(self, timeout: float, outstanding: list[str] | None = None) -> None:
        self.timeout = timeout
        self.outstanding = outstanding or []

        message = f"VMs did not start up within {timeout:g} seconds"
        if self.outstanding:
            message = f"{message} - still waiting on {', '.join(self.outstanding)}"

        super().__init__(message)

    def __reduce__(self):
        return (type(self), (self.timeout, self.outstanding))


class NotFoundError(DUnitError):
    """A name is not bound in the naming directory."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Name {name} is not bound")

    def __reduce__(self):
        return (type(self), (self.name,))


class NotBoundError(NotFoundError):
    """A worker id was never registered in the naming directory."""
    pass


class NameNotBoundError(NotFoundError):
    """A relaunched worker did not register its name after a bounce."""
    pass


class DuplicateNameError(DUnitError):
    """A name was bound twice outside of a bounce."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Name {name} is already bound")

    def __reduce__(self):
        return (type(self), (self.name,))


class BounceError(DUnitError):
    """Relaunch or re-registration of a bounced worker failed."""

    def __init__(
        self,
        vm_id: int,
        version: str,
        reason: str,
        cause: Exception | None = None,
    ) -> None:
        self.vm_id = vm_id
        self.version = version
        self.reason = reason
        self.cause = cause
        super().__init__(f"Could not bounce VM {vm_id} to version {version} - {reason}")

    def __reduce__(self):
        return (type(self), (self.vm_id, self.version, self.reason, self.cause))


class RemoteUnreachableError(DUnitError):
    """The transport failed: the remote process is gone or not listening."""

    def __init__(self, address: tuple[str, int], reason: str) -> None:
        self.address = address
        self.reason = reason
        host, port = address
        super().__init__(f"Remote endpoint at {host}:{port} is unreachable - {reason}")

    def __reduce__(self):
        return (type(self), (self.address, self.reason))


class RemoteCallError(DUnitError):
    """
    A remote infrastructure method raised an exception that could not be
    shipped back to the caller as-is.
    """

    def __init__(self, method: str, error_type: str, message: str, stack_trace: str = "") -> None:
        self.method = method
        self.error_type = error_type
        self.stack_trace = stack_trace
        self.remote_message = message
        super().__init__(f"Remote call {method} failed with {error_type}: {message}")

    def __reduce__(self):
        return (type(self), (self.method, self.error_type, self.remote_message, self.stack_trace))


class RemoteInvocationError(DUnitError):
    """Code invoked inside a worker raised. Carries the captured MethodResult."""

    def __init__(self, vm_name: str, result: MethodResult) -> None:
        self.vm_name = vm_name
        self.result = result
        super().__init__(
            f"Invocation on {vm_name} failed with {result.exception_type}: {result.message}\n"
            f"{result.stack_trace}"
        )

    def __reduce__(self):
        return (type(self), (self.vm_name, self.result))


class FleetStateError(DUnitError):
    """A fleet lifecycle operation was called in the wrong state."""
    pass


class SuspectStringsError(AssertionError):
    """Suspicious log entries were written during the run."""

    def __init__(self, suspects: str) -> None:
        self.suspects = suspects
        super().__init__(
            "Suspicious strings were written to the log during this run.\n"
            "Fix the strings or use add_ignored_exception() to ignore.\n"
            f"{suspects}"
        )

    def __reduce__(self):
        return (type(self), (self.suspects,))
