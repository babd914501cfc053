"""A real-time multiplayer role-playing game server over TCP and WebSocket."""

__version__ = "0.1.0"