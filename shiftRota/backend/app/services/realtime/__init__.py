from .registry import ConnectionRegistry, SessionHandle, WebSocketHandle, get_registry

__all__ = ["ConnectionRegistry", "SessionHandle", "WebSocketHandle", "get_registry"]
