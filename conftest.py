"""
Early pytest configuration plugin.

Loaded by pytest before test modules are imported. Its directory, the
repository root, is put on sys.path so ``sentence_server`` imports without
an install.
"""

import socket

import pytest


def _find_free_port() -> int:
    """Find a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


@pytest.fixture
def free_port() -> int:
    """Provide a free TCP port for tests."""
    return _find_free_port()
