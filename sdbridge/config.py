"""Configuration for the systemctl probe and the command line tool."""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass

from .utils import parse_float

DEFAULT_SYSTEMCTL = "systemctl"
DEFAULT_SYSTEMCTL_TIMEOUT = 5.0
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class ProbeConfig:
    command: list[str]
    timeout: float | None

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ProbeConfig:
        source = os.environ if env is None else env
        command = shlex.split(source.get("SDBRIDGE_SYSTEMCTL") or DEFAULT_SYSTEMCTL)
        timeout = parse_float(source.get("SDBRIDGE_SYSTEMCTL_TIMEOUT"), DEFAULT_SYSTEMCTL_TIMEOUT)
        return ProbeConfig(
            command=command or [DEFAULT_SYSTEMCTL],
            # Zero or negative disables the timeout
            timeout=timeout if timeout > 0 else None,
        )


@dataclass(frozen=True)
class CliConfig:
    log_level: str
    probe: ProbeConfig

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> CliConfig:
        source = os.environ if env is None else env
        log_level = (source.get("SDBRIDGE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        return CliConfig(log_level=log_level, probe=ProbeConfig.from_env(source))
