"""Typed access to the environment variables systemd hands to a service."""

from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping

from .errors import MissingVarError


def _is_text(value: str) -> bool:
    # os.environ smuggles undecodable bytes through as lone surrogates
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class EnvironmentReader:
    """Read variables from ``os.environ`` or an injected mapping.

    A value that is not valid UTF-8 is reported exactly like a missing one.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ

    def read(self, name: str) -> str:
        value = self._environ.get(name)
        if value is None or not _is_text(value):
            raise MissingVarError(name)
        return value

    def get(self, name: str) -> str | None:
        try:
            return self.read(name)
        except MissingVarError:
            return None

    def discard(self, *names: str) -> None:
        """Remove variables so child processes do not inherit them."""
        if not isinstance(self._environ, MutableMapping):
            raise TypeError("environment mapping is read-only")
        for name in names:
            self._environ.pop(name, None)
