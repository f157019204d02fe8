"""MCP adapter for the Terminal.shop coffee store API."""

__version__ = "0.1.0"
