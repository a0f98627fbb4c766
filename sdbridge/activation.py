"""Claim listening sockets passed in by systemd socket activation.

systemd opens the sockets described by a ``.socket`` unit, starts the service
with them as descriptors ``3 .. 3+$LISTEN_FDS-1`` and describes them through
``$LISTEN_PID``, ``$LISTEN_FDS`` and ``$LISTEN_FDNAMES`` (see sd_listen_fds(3)).
"""

from __future__ import annotations

import logging
import os
import socket
import stat

from .env import EnvironmentReader
from .errors import InvalidVarError, NotSocketError, SocketConsumedError, TransportError, WrongPIDError
from .utils import parse_unsigned, split_names

LOGGER = logging.getLogger(__name__)

SD_LISTEN_FDS_START = 3

LISTEN_PID = "LISTEN_PID"
LISTEN_FDS = "LISTEN_FDS"
LISTEN_FDNAMES = "LISTEN_FDNAMES"


class ActivatedSocket:
    """A descriptor systemd passed to this process, owned until transferred.

    The raw descriptor can be turned into a socket object exactly once via
    :meth:`listener` (or released with :meth:`close`). Afterwards every
    accessor raises :class:`SocketConsumedError`.
    """

    __slots__ = ("_name", "_fd", "_consumed")

    def __init__(self, fd: int, name: str | None = None) -> None:
        self._fd = fd
        self._name = name
        self._consumed = False

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else "owned"
        return f"ActivatedSocket(fd={self._fd}, name={self._name!r}, {state})"

    @property
    def name(self) -> str | None:
        """Name from ``$LISTEN_FDNAMES``, or None when systemd supplied none."""
        return self._name

    @property
    def consumed(self) -> bool:
        return self._consumed

    def fileno(self) -> int:
        if self._consumed:
            raise SocketConsumedError(self._fd)
        return self._fd

    def _take(self) -> int:
        fd = self.fileno()
        self._consumed = True
        return fd

    def listener(self) -> socket.socket:
        """Adopt the descriptor as a non-blocking socket object.

        The socket family and type are whatever the kernel reports for the
        descriptor; systemd may pass TCP, UNIX or datagram sockets alike.
        The descriptor is consumed even when this raises; on failure it is
        closed rather than handed back.
        """
        fd = self._take()
        try:
            mode = os.fstat(fd).st_mode
        except OSError as exc:
            _close_quietly(fd)
            raise TransportError(exc) from exc

        if not stat.S_ISSOCK(mode):
            _close_quietly(fd)
            raise NotSocketError(fd)

        try:
            sock = socket.socket(fileno=fd)
        except OSError as exc:
            _close_quietly(fd)
            raise TransportError(exc) from exc

        try:
            sock.set_inheritable(False)
            sock.setblocking(False)
        except OSError as exc:
            sock.close()
            raise TransportError(exc) from exc
        return sock

    def close(self) -> None:
        """Release a descriptor this process does not intend to use."""
        fd = self._take()
        try:
            os.close(fd)
        except OSError as exc:
            raise TransportError(exc) from exc


def _close_quietly(fd: int) -> None:
    try:
        os.close(fd)
    except OSError:
        LOGGER.debug("[activation] Descriptor %d was already closed", fd)


def construct_sockets(
    listen_fds: str,
    listen_fd_names: str | None,
    listen_pid: str,
    *,
    pid: int | None = None,
    logger: logging.Logger | None = None,
) -> list[ActivatedSocket]:
    """Build the socket handles described by raw ``$LISTEN_*`` values.

    Args:
        listen_fds: Raw ``$LISTEN_FDS`` value.
        listen_fd_names: Raw ``$LISTEN_FDNAMES`` value, or None when unset.
        listen_pid: Raw ``$LISTEN_PID`` value.
        pid: PID to compare against; defaults to ``os.getpid()``.
        logger: Receives the warning about unusable names.

    Returns:
        One handle per descriptor, in descriptor order.

    Raises:
        InvalidVarError: A PID or count is not an unsigned decimal.
        WrongPIDError: The variables were meant for a different process.
    """
    log = logger or LOGGER
    own_pid = os.getpid() if pid is None else pid

    declared_pid = parse_unsigned(listen_pid)
    if declared_pid is None:
        raise InvalidVarError(LISTEN_PID, listen_pid)

    # A forked child inherits the parent's environment but not its sockets
    if declared_pid != own_pid:
        raise WrongPIDError(own_pid, listen_pid)

    count = parse_unsigned(listen_fds)
    if count is None:
        raise InvalidVarError(LISTEN_FDS, listen_fds)

    fds = range(SD_LISTEN_FDS_START, SD_LISTEN_FDS_START + count)

    if listen_fd_names is not None:
        names = split_names(listen_fd_names)
        if len(names) == count:
            return [ActivatedSocket(fd, name) for fd, name in zip(fds, names)]
        if names:
            log.warning("[activation] Invalid $%s=%s", LISTEN_FDNAMES, listen_fd_names)

    return [ActivatedSocket(fd) for fd in fds]


def sockets(
    env: EnvironmentReader | None = None,
    *,
    unset_environment: bool = False,
    logger: logging.Logger | None = None,
) -> list[ActivatedSocket]:
    """Return the sockets systemd passed to this process.

    Raises MissingVarError when the process was not socket-activated. With
    ``unset_environment`` the ``$LISTEN_*`` variables are removed once the
    sockets have been claimed.
    """
    reader = env or EnvironmentReader()
    listen_fds = reader.read(LISTEN_FDS)
    listen_pid = reader.read(LISTEN_PID)
    listen_fd_names = reader.get(LISTEN_FDNAMES)

    result = construct_sockets(listen_fds, listen_fd_names, listen_pid, logger=logger)

    if unset_environment:
        reader.discard(LISTEN_PID, LISTEN_FDS, LISTEN_FDNAMES)
    (logger or LOGGER).debug("[activation] Claimed %d socket(s) from systemd", len(result))
    return result
