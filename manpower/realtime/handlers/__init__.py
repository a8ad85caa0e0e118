"""
Real-time Handlers
==================

WebSocket event handlers for the ``/chat`` namespace (chatHandler).

Importing this module registers all event handlers with the shared
Socket.IO server instance.
"""

from __future__ import annotations

from . import chatHandler

__all__ = [
    "chatHandler",
]
