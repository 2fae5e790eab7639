"""WebSocket game server for a four-player bluffing card game with fake cards."""

__version__ = "0.1.0"