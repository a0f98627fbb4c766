"""Access properties of systemd units via ``systemctl show``."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, cast

from .config import ProbeConfig
from .errors import MissingDelimiterError, MissingPropertyError, StateParseError, SystemctlError

LOGGER = logging.getLogger(__name__)

ActiveState = Literal["active", "reloading", "inactive", "failed", "activating", "deactivating"]

ACTIVE_STATES: frozenset[str] = frozenset(
    {"active", "reloading", "inactive", "failed", "activating", "deactivating"}
)


def parse_active_state(value: str) -> ActiveState:
    """Validate an ``ActiveState`` value; matching is exact and case-sensitive."""
    if value not in ACTIVE_STATES:
        raise StateParseError(value)
    return cast(ActiveState, value)


@dataclass(frozen=True, slots=True)
class UnitProperties:
    """Snapshot of a unit's properties as reported by systemctl."""

    fields: Mapping[str, str]
    active_state: ActiveState

    def state(self) -> ActiveState:
        return self.active_state

    def property(self, name: str) -> str | None:
        return self.fields.get(name)

    @classmethod
    def parse(cls, text: str) -> UnitProperties:
        """Parse ``KEY=VALUE`` lines; later duplicates replace earlier ones.

        Raises:
            MissingDelimiterError: A line has no ``=``.
            MissingPropertyError: ``ActiveState`` is absent.
            StateParseError: ``ActiveState`` is not a known state.
        """
        fields: dict[str, str] = {}
        lines = text.split("\n")
        if lines and not lines[-1]:
            lines.pop()
        for line in lines:
            key, sep, value = line.strip().partition("=")
            if not sep:
                raise MissingDelimiterError(line)
            fields[key] = value

        raw_state = fields.get("ActiveState")
        if raw_state is None:
            raise MissingPropertyError("ActiveState")

        return cls(fields=MappingProxyType(fields), active_state=parse_active_state(raw_state))


def properties(unit: str, config: ProbeConfig | None = None) -> UnitProperties:
    """Run ``systemctl show <unit>`` and parse its output."""
    probe = config or ProbeConfig.from_env()
    cmd = [*probe.command, "show", unit]
    try:
        result = subprocess.run(  # nosec B603 - argument list, no shell
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=probe.timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise SystemctlError(f"Running {probe.command[0]}: {exc}") from exc

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise SystemctlError(f"Running {probe.command[0]}: {detail}")

    LOGGER.debug("[properties] Read %d byte(s) of properties for %s", len(result.stdout), unit)
    return UnitProperties.parse(result.stdout)
