"""
ManPower Real-time Module
=========================

In-process change feed, the per-connection conversation feed, and the
Socket.IO server that exposes them to external clients.

Usage in FastAPI app startup::

    from manpower.realtime.socketServer import socket_app
    from manpower.realtime import handlers  # registers event handlers

The ``handlers`` sub-package registers all Socket.IO event handlers as a
side-effect of import. Nothing is imported here so that services can use
``changeFeed`` without pulling in the Socket.IO server.
"""
