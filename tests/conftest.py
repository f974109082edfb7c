"""Shared fixtures for the tn test suite."""

import shutil
import tempfile
from pathlib import Path

import pytest

from tnshim.ipc.server import IPCServer
from tnshim.session.manager import SessionManager
from tnshim.sink.memory import MemorySink


@pytest.fixture
def short_tmp():
    """Temporary directory with a path short enough for AF_UNIX sockets."""
    path = Path(tempfile.mkdtemp(prefix="tn-", dir="/tmp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def session(sink):
    return SessionManager(sink, delivery_delay=0.0)


@pytest.fixture
def server(short_tmp, session):
    srv = IPCServer(short_tmp / "shim.sock", session.handle)
    srv.start()
    yield srv
    srv.stop()
