"""Capture-the-flag tank game client, wire protocol, display models and upload tools."""

__version__ = "0.1.0"

__all__ = [
    "client",
    "connection",
    "lineinput",
    "matchmaking",
    "protocol",
    "screen",
    "sprites",
    "status",
    "uploader",
    "viewport",
]