from .errors import (
    BounceError as BounceError,
    DUnitError as DUnitError,
    DuplicateNameError as DuplicateNameError,
    FleetStateError as FleetStateError,
    LaunchError as LaunchError,
    NameNotBoundError as NameNotBoundError,
    NotBoundError as NotBoundError,
    NotFoundError as NotFoundError,
    RemoteCallError as RemoteCallError,
    RemoteInvocationError as RemoteInvocationError,
    RemoteUnreachableError as RemoteUnreachableError,
    StartupTimeoutError as StartupTimeoutError,
    SuspectStringsError as SuspectStringsError,
)
