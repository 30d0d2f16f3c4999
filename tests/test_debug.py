"""Tests for debug logging."""

import pytest

from unwebpack import debug


@pytest.fixture(autouse=True)
def reset_debug_logger():
    yield
    debug.close_debug_logger()


class TestDebugLog:
    """Tests for the debug file logger."""

    def test_noop_without_logger(self):
        """Test that logging before setup does nothing."""
        debug.debug_log("info", "ignored")

        assert debug.debug_logger is None

    def test_writes_structured_data(self, tmp_path):
        """Test messages and JSON data in the log file."""
        log_path = tmp_path / "debug.log"
        debug.setup_debug_logger(log_path)

        debug.debug_log("warning", "Module rewritten", {"module": 3, "path": tmp_path})
        debug.close_debug_logger()

        text = log_path.read_text(encoding="utf-8")
        assert "WARNING" in text
        assert "Module rewritten" in text
        assert '"module": 3' in text

    def test_close_resets_state(self, tmp_path):
        """Test that closing detaches the logger."""
        debug.setup_debug_logger(tmp_path / "debug.log")
        assert debug.debug_log_file == tmp_path / "debug.log"

        debug.close_debug_logger()

        assert debug.debug_logger is None
        assert debug.debug_log_file is None
