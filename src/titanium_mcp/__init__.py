"""MCP server driving the Titanium CLI for mobile app builds and debugging."""

__version__ = "0.1.0"
