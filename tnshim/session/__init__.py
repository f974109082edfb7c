"""
TN Session Module

Stateful notification session: authorization, group replacement,
attachment resolution and delivery through a sink.
"""

from .manager import (
    SessionManager,
    LIST_HEADER,
    DEFAULT_DELIVERY_DELAY,
)

from .attachments import (
    AttachmentResolver,
    HTTPAttachmentFetcher,
    FetchError,
)

__all__ = [
    'SessionManager',
    'LIST_HEADER',
    'DEFAULT_DELIVERY_DELAY',
    'AttachmentResolver',
    'HTTPAttachmentFetcher',
    'FetchError',
]
