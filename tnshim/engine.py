"""
TN Engine

Facade exposing post/list/remove to the CLI, either against an in-process
session or against a running shim over its socket. Both return Results
with the same shape.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from .ipc.client import IPCClient
from .ipc.messages import (
    ListRequest,
    NotificationPayload,
    RemoveRequest,
    Request,
    Result,
    SendRequest,
)
from .session.manager import SessionManager


class Engine(ABC):
    """Base engine: builds requests and hands them to dispatch()."""

    @abstractmethod
    def dispatch(self, request: Request) -> Result:
        """Run one request and return its Result."""
        pass

    def post(self, payload: NotificationPayload) -> Result:
        return self.dispatch(SendRequest(payload=payload))

    def list(self, group: str) -> Result:
        return self.dispatch(ListRequest(group=group))

    def remove(self, group: str) -> Result:
        return self.dispatch(RemoveRequest(group=group))


class LocalEngine(Engine):
    """Runs requests against an in-process session."""

    def __init__(self, session: SessionManager):
        self.session = session

    def dispatch(self, request: Request) -> Result:
        return self.session.handle(request)


class RemoteEngine(Engine):
    """
    Runs requests against a shim process.

    Transport failures propagate as IPCError/ProtocolError.
    """

    def __init__(self, socket_path: Union[str, Path]):
        self.client = IPCClient(socket_path)

    def dispatch(self, request: Request) -> Result:
        return self.client.round_trip(request)
