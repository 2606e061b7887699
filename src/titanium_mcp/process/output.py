"""Append-only output sink for captured CLI output."""

from __future__ import annotations

# Output buffer limits (security: prevent DoS)
MAX_OUTPUT_BYTES: int = 10_000_000  # 10MB total buffer
MAX_OUTPUT_ENTRY: int = 100_000  # 100KB per entry


class OutputSink:
    """Named output channel receiving stdout/stderr chunks.

    Chunks are only ever appended; the oldest chunks are dropped once the
    buffer exceeds MAX_OUTPUT_BYTES. `show()` marks the channel as revealed
    so tool responses can point the user at it.
    """

    def __init__(self, name: str = "Titanium"):
        self.name = name
        self._chunks: list[str] = []
        self._bytes = 0
        self._revealed = False

    @property
    def text(self) -> str:
        """Everything captured since the last clear."""
        return "".join(self._chunks)

    @property
    def revealed(self) -> bool:
        """Whether the sink has been shown since the last clear."""
        return self._revealed

    def append(self, text: str) -> None:
        """Append a chunk of output."""
        if not text:
            return
        if len(text) > MAX_OUTPUT_ENTRY:
            text = text[:MAX_OUTPUT_ENTRY] + "... [truncated]\n"
        self._chunks.append(text)
        self._bytes += len(text)
        while self._bytes > MAX_OUTPUT_BYTES and self._chunks:
            removed = self._chunks.pop(0)
            self._bytes -= len(removed)

    def clear(self) -> None:
        """Drop all captured output."""
        self._chunks.clear()
        self._bytes = 0
        self._revealed = False

    def tail(self, lines: int = 50) -> list[str]:
        """Last `lines` lines of output."""
        if lines <= 0:
            return []
        return self.text.splitlines()[-lines:]

    def show(self) -> None:
        """Reveal the sink to the user."""
        self._revealed = True
