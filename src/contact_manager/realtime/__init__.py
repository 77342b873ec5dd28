"""
Realtime notification channel over WebSocket.
"""

from contact_manager.realtime.manager import ConnectionManager, get_connection_manager
from contact_manager.realtime.messages import MessageType, WebSocketMessage

__all__ = ["ConnectionManager", "MessageType", "WebSocketMessage", "get_connection_manager"]
