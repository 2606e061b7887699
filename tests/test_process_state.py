"""Tests for process results, output sink and notifier."""

from titanium_mcp.process import CommandResult, LoggingNotifier, OutputSink, ProcessState
from titanium_mcp.process.output import MAX_OUTPUT_ENTRY


class TestCommandResult:
    """Tests for CommandResult."""

    def test_success(self):
        result = CommandResult(command="appc run", exit_code=0, duration_ms=1234.567)
        assert result.success is True
        assert result.state == ProcessState.SUCCEEDED
        assert result.to_dict() == {
            "success": True,
            "state": "succeeded",
            "command": "appc run",
            "durationMs": 1234.57,
            "exitCode": 0,
        }

    def test_failure(self):
        result = CommandResult(command="appc run", exit_code=1)
        assert result.state == ProcessState.FAILED
        assert "[FAILED] Command exited with code 1" in result.to_summary()

    def test_cancelled(self):
        result = CommandResult(command="appc run", exit_code=0, cancelled=True)
        assert result.success is False
        assert result.state == ProcessState.CANCELLED
        assert result.to_dict()["cancelled"] is True


class TestOutputSink:
    """Tests for OutputSink."""

    def test_append_and_tail(self):
        sink = OutputSink()
        sink.append("one\ntwo\n")
        sink.append("three\n")
        assert sink.text == "one\ntwo\nthree\n"
        assert sink.tail(2) == ["two", "three"]
        assert sink.tail(0) == []

    def test_long_entry_truncated(self):
        sink = OutputSink()
        sink.append("x" * (MAX_OUTPUT_ENTRY + 10))
        assert sink.text.endswith("... [truncated]\n")

    def test_clear_resets_revealed(self):
        sink = OutputSink()
        sink.append("output")
        sink.show()
        assert sink.revealed
        sink.clear()
        assert sink.text == ""
        assert not sink.revealed

    def test_oldest_chunks_evicted(self, monkeypatch):
        monkeypatch.setattr("titanium_mcp.process.output.MAX_OUTPUT_BYTES", 10)
        sink = OutputSink()
        sink.append("aaaaaa")
        sink.append("bbbbbb")
        assert sink.text == "bbbbbb"


class TestLoggingNotifier:
    """Tests for LoggingNotifier."""

    def test_drain(self):
        notifier = LoggingNotifier()
        notifier.show_info("A build is already in progress")
        notifier.show_error("Command failed")
        assert [(m.level, m.message) for m in notifier.drain()] == [
            ("info", "A build is already in progress"),
            ("error", "Command failed"),
        ]
        assert notifier.drain() == []
