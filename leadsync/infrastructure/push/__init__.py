"""
Push Infrastructure Package
"""
from leadsync.infrastructure.push.socketio_channel import SocketIOPushChannel

__all__ = ["SocketIOPushChannel"]
