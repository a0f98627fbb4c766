"""Send service status notifications to systemd (sd_notify protocol).

A notification message is a block of ``KEY=VALUE`` lines sent as a single
datagram to the unix socket named by ``$NOTIFY_SOCKET``. Delivery is fire and
forget: there is no acknowledgement and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .env import EnvironmentReader
from .errors import InvalidVarError, MissingVarError, NotifyError, SystemdError, TransportError

LOGGER = logging.getLogger(__name__)

NOTIFY_SOCKET = "NOTIFY_SOCKET"


@dataclass(frozen=True, slots=True)
class Ready:
    """The service finished starting up."""


@dataclass(frozen=True, slots=True)
class Reloading:
    """The service is reloading its configuration."""


@dataclass(frozen=True, slots=True)
class Stopping:
    """The service is beginning its shutdown."""


@dataclass(frozen=True, slots=True)
class Status:
    """Free-form status text shown by ``systemctl status``."""

    text: str


@dataclass(frozen=True, slots=True)
class Errno:
    """The service failed with the given errno-style code."""

    code: int


@dataclass(frozen=True, slots=True)
class WatchdogOk:
    """Watchdog keep-alive."""


@dataclass(frozen=True, slots=True)
class WatchdogTrigger:
    """Ask systemd to act as if the watchdog timer expired."""


@dataclass(frozen=True, slots=True)
class Custom:
    """Service-specific variable, sent as ``X-<key>=<value>``."""

    key: str
    value: str


Notification = Ready | Reloading | Stopping | Status | Errno | WatchdogOk | WatchdogTrigger | Custom

_NOTIFICATION_TYPES = (Ready, Reloading, Stopping, Status, Errno, WatchdogOk, WatchdogTrigger, Custom)


def format_notification(notification: Notification) -> str:
    """Render a single notification as its ``KEY=VALUE`` line (no newline)."""
    if isinstance(notification, Ready):
        return "READY=1"
    if isinstance(notification, Reloading):
        return "RELOADING=1"
    if isinstance(notification, Stopping):
        return "STOPPING=1"
    if isinstance(notification, Status):
        return f"STATUS={notification.text}"
    if isinstance(notification, Errno):
        return f"ERRNO={notification.code:d}"
    if isinstance(notification, WatchdogOk):
        return "WATCHDOG=1"
    if isinstance(notification, WatchdogTrigger):
        return "WATCHDOG=trigger"
    if isinstance(notification, Custom):
        return f"X-{notification.key}={notification.value}"
    raise TypeError(f"Unsupported notification: {notification!r}")


def parse_notification(line: str) -> Notification:
    """Map a rendered line back to the notification that produced it.

    Raises ValueError for lines outside the vocabulary this module sends.
    """
    key, sep, value = line.rstrip("\n").partition("=")
    if not sep:
        raise ValueError(f"Notification line {line!r} is missing '='")
    if key == "READY" and value == "1":
        return Ready()
    if key == "RELOADING" and value == "1":
        return Reloading()
    if key == "STOPPING" and value == "1":
        return Stopping()
    if key == "STATUS":
        return Status(value)
    if key == "ERRNO":
        try:
            return Errno(int(value))
        except ValueError:
            raise ValueError(f"ERRNO value {value!r} is not an integer") from None
    if key == "WATCHDOG" and value == "1":
        return WatchdogOk()
    if key == "WATCHDOG" and value == "trigger":
        return WatchdogTrigger()
    if key.startswith("X-") and len(key) > 2:
        return Custom(key[2:], value)
    raise ValueError(f"Unrecognized notification line {line!r}")


class Message:
    """Ordered batch of notifications delivered in one datagram.

    Line order on the wire follows insertion order. Status and custom text is
    not escaped, so it must not contain newlines.
    """

    __slots__ = ("_notifications",)

    def __init__(self, notifications: Iterable[Notification] = ()) -> None:
        self._notifications: list[Notification] = []
        for notification in notifications:
            self.push(notification)

    @classmethod
    def of(cls, *notifications: Notification) -> Message:
        return cls(notifications)

    def push(self, notification: Notification) -> None:
        if not isinstance(notification, _NOTIFICATION_TYPES):
            raise TypeError(f"Unsupported notification: {notification!r}")
        self._notifications.append(notification)

    def __iter__(self) -> Iterator[Notification]:
        return iter(self._notifications)

    def __len__(self) -> int:
        return len(self._notifications)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self._notifications == other._notifications

    def __repr__(self) -> str:
        return f"Message({self._notifications!r})"

    def __str__(self) -> str:
        return render(self)


MessageLike = Message | Notification | Iterable[Notification]


def _as_message(message: MessageLike) -> Message:
    if isinstance(message, Message):
        return message
    if isinstance(message, _NOTIFICATION_TYPES):
        return Message.of(message)
    return Message(message)


def render(message: MessageLike) -> str:
    """Render notifications as newline-terminated ``KEY=VALUE`` lines."""
    return "".join(f"{format_notification(item)}\n" for item in _as_message(message))


@dataclass(frozen=True, slots=True)
class NotifyEndpoint:
    """Filesystem path (or ``@``-prefixed abstract name) of the notify socket."""

    path: str

    @property
    def address(self) -> str:
        if self.path.startswith("@"):
            return "\0" + self.path[1:]
        return self.path

    @classmethod
    def from_environment(cls, env: EnvironmentReader | None = None) -> NotifyEndpoint:
        reader = env or EnvironmentReader()
        path = reader.read(NOTIFY_SOCKET)
        if len(path) < 2 or path[0] not in "/@":
            raise InvalidVarError(NOTIFY_SOCKET, path)
        return cls(path)


class NotifyClient:
    """Datagram client for the systemd notification socket.

    One unbound ``AF_UNIX``/``SOCK_DGRAM`` socket is created per client and
    shared by every send; concurrent sends need no locking because each one is
    a single ``sendto`` call. Sends issued concurrently are not ordered with
    respect to each other.
    """

    def __init__(
        self,
        endpoint: NotifyEndpoint,
        sock: socket.socket | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._logger = logger or LOGGER
        if sock is None:
            try:
                sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM | socket.SOCK_CLOEXEC)
            except OSError as exc:
                raise TransportError(exc) from exc
        sock.setblocking(False)
        self._socket: socket.socket | None = sock

    @classmethod
    def from_environment(
        cls,
        env: EnvironmentReader | None = None,
        logger: logging.Logger | None = None,
    ) -> NotifyClient:
        return cls(NotifyEndpoint.from_environment(env), logger=logger)

    @property
    def closed(self) -> bool:
        return self._socket is None

    async def send(self, message: MessageLike) -> None:
        """Render ``message`` and hand it to the kernel as one datagram.

        Raises TransportError when the OS refuses the datagram. Cancelling the
        call after the datagram was dispatched does not recall it.
        """
        sock = self._socket
        if sock is None:
            raise NotifyError("Notification socket is closed")
        payload = render(message).encode("utf-8")
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendto(sock, payload, self.endpoint.address)
        except OSError as exc:
            raise TransportError(exc) from exc
        self._logger.debug("[notify] Sent %d byte(s) to %s", len(payload), self.endpoint.path)

    def close(self) -> None:
        sock = self._socket
        self._socket = None
        if sock is not None:
            sock.close()

    async def __aenter__(self) -> NotifyClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


async def notify(
    message: MessageLike,
    env: EnvironmentReader | None = None,
    logger: logging.Logger | None = None,
) -> bool:
    """Best-effort send; logs failures instead of raising.

    Returns True when the datagram was handed to the kernel. A missing
    ``$NOTIFY_SOCKET`` only means the process is not supervised by systemd,
    so it is logged at debug level; every other failure is a warning.
    """
    log = logger or LOGGER
    try:
        client = NotifyClient.from_environment(env, logger=log)
    except MissingVarError as exc:
        log.debug("[notify] Not notifying systemd: %s", exc)
        return False
    except SystemdError as exc:
        log.warning("Failed to notify systemd: %s", exc)
        return False

    try:
        await client.send(message)
    except SystemdError as exc:
        log.warning("Failed to notify systemd: %s", exc)
        return False
    finally:
        client.close()
    return True


async def ready(env: EnvironmentReader | None = None, logger: logging.Logger | None = None) -> None:
    """Tell systemd the service has finished starting up."""
    await notify(Ready(), env=env, logger=logger)


async def watchdog(env: EnvironmentReader | None = None, logger: logging.Logger | None = None) -> None:
    """Reset the systemd watchdog timer."""
    await notify(WatchdogOk(), env=env, logger=logger)


async def stopping(env: EnvironmentReader | None = None, logger: logging.Logger | None = None) -> None:
    await notify(Stopping(), env=env, logger=logger)


async def status(text: str, env: EnvironmentReader | None = None, logger: logging.Logger | None = None) -> None:
    await notify(Status(text), env=env, logger=logger)
