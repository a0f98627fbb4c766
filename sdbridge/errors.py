"""Exception hierarchy shared by the activation, notification and probe modules."""

from __future__ import annotations


class SystemdError(RuntimeError):
    """Generic systemd integration failure."""


class MissingVarError(SystemdError):
    """Raised when a required environment variable is absent or not valid text."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing ${name} variable")


class InvalidVarError(SystemdError):
    """Raised when an environment variable is present but cannot be parsed."""

    def __init__(self, name: str, value: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Invalid ${name}={value}")


class TransportError(SystemdError):
    """Raised when the OS rejects a descriptor or datagram operation."""

    def __init__(self, cause: OSError) -> None:
        self.cause = cause
        super().__init__(str(cause))


class SocketError(SystemdError):
    """Failure while claiming sockets passed in by systemd."""


class WrongPIDError(SocketError):
    """The activation environment was addressed to another process."""

    def __init__(self, actual: int, declared: str) -> None:
        self.actual = actual
        self.declared = declared
        super().__init__(f"PID={actual} but $LISTEN_PID={declared}")


class NotSocketError(SocketError):
    def __init__(self, fd: int) -> None:
        self.fd = fd
        super().__init__(f"file descriptor {fd} is not a socket")


class SocketConsumedError(SocketError):
    def __init__(self, fd: int) -> None:
        self.fd = fd
        super().__init__(f"file descriptor {fd} has already been transferred")


class NotifyError(SystemdError):
    """Failure while talking to the systemd notification socket."""


class PropertyParseError(SystemdError):
    """Raised when `systemctl show` output cannot be turned into unit properties."""


class MissingDelimiterError(PropertyParseError):
    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"Line {line!r} is missing the delimiter '='")


class MissingPropertyError(PropertyParseError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing property {name}")


class StateParseError(PropertyParseError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"{value} is not a valid state")


class SystemctlError(PropertyParseError):
    """Running systemctl failed before any output could be parsed."""
