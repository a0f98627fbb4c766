"""Shared test fixtures for the sdbridge test suite.

This module provides reusable fixtures for:
- Logger injection
- Fake process environments
- A live notification socket that records datagrams
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from collections.abc import Callable, Iterator
from unittest.mock import Mock

import pytest
from sdbridge.env import EnvironmentReader

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Returns a Mock with spec=logging.Logger to ensure only valid
    logger methods can be called.
    """
    return Mock(spec=logging.Logger)


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def own_pid() -> str:
    return str(os.getpid())


@pytest.fixture
def make_env() -> Callable[..., EnvironmentReader]:
    """Factory for readers over a private, mutable environment dict.

    Usage:
        env = make_env(LISTEN_FDS="2", LISTEN_PID="123")
    """

    def _create(**values: str) -> EnvironmentReader:
        return EnvironmentReader(dict(values))

    return _create


# ============================================================================
# Notification Socket Fixtures
# ============================================================================


@pytest.fixture
def notify_server() -> Iterator[tuple[socket.socket, str]]:
    """Bind an abstract unix datagram socket standing in for systemd.

    Yields (server_socket, notify_socket_value) where the value is suitable
    for $NOTIFY_SOCKET.
    """
    name = f"sdbridge-test-{uuid.uuid4().hex}"
    server = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    server.bind("\0" + name)
    server.settimeout(2.0)
    try:
        yield server, "@" + name
    finally:
        server.close()
