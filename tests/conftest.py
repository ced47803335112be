"""Pytest configuration and shared fixtures."""

import shlex
import sys
from pathlib import Path

import pytest

ECHO_SERVER = Path(__file__).parent / "fixtures" / "echo_server.py"


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def echo_server_argv() -> list[str]:
    """Command line for the line-delimited JSON-RPC fixture server."""
    return [sys.executable, str(ECHO_SERVER)]


@pytest.fixture
def echo_server_command(echo_server_argv: list[str]) -> str:
    """Same command as a single shell-quoted string."""
    return shlex.join(echo_server_argv)
