"""
sdbridge - systemd integration without libsystemd

Talks to systemd through environment variables, inherited descriptors and the
notification socket instead of linking the C client library.

Core modules:
- activation: Claim sockets passed in by socket activation ($LISTEN_FDS)
- notify: Encode and send sd_notify status messages ($NOTIFY_SOCKET)
- properties: Read unit properties through `systemctl show`
- env: Environment variable access with missing/invalid distinction
- errors: Exception hierarchy shared by all of the above
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from .activation import ActivatedSocket, construct_sockets, sockets
from .errors import SystemdError
from .notify import Message, NotifyClient, ready
from .properties import UnitProperties, properties

__version__ = "0.3.1"

__all__ = [
    "ActivatedSocket",
    "Message",
    "NotifyClient",
    "SystemdError",
    "UnitProperties",
    "construct_sockets",
    "is_systemd",
    "properties",
    "ready",
    "sockets",
]

LOGGER = logging.getLogger(__name__)


def is_systemd(
    unit: str,
    *,
    probe: Callable[[str], UnitProperties] = properties,
    pid: int | None = None,
) -> bool:
    """Check whether this process is the main process of the given unit.

    Any failure to query the unit counts as "not running under systemd".
    """
    try:
        unit_properties = probe(unit)
    except SystemdError as exc:
        LOGGER.debug("[systemd] Could not read properties of %s: %s", unit, exc)
        return False

    systemd_pid = unit_properties.property("MainPID")
    process_pid = str(os.getpid() if pid is None else pid)
    LOGGER.debug("[systemd] Checking for PID match: MainPID=%s SelfPID=%s", systemd_pid, process_pid)
    return systemd_pid == process_pid
