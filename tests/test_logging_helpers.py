"""Tests for loguru sink configuration."""
import io
from unittest.mock import patch

from loguru import logger

from tokenkeeper.logging_helpers import configure_logging


class TestConfigureLogging:
    def test_explicit_level_filters_messages(self):
        sink = io.StringIO()
        handler_id = configure_logging("WARNING", sink=sink)
        try:
            logger.debug("hidden")
            logger.warning("shown")
        finally:
            logger.remove(handler_id)
        output = sink.getvalue()
        assert "shown" in output
        assert "hidden" not in output

    def test_debug_setting_enables_debug(self, tmp_path):
        from tokenkeeper.storage.config import AppSettings
        sink = io.StringIO()
        with patch("tokenkeeper.storage.config.SETTINGS_FILE", tmp_path / "settings.json"):
            AppSettings.set("debug", True)
            handler_id = configure_logging(sink=sink)
        try:
            logger.debug("refresh details")
        finally:
            logger.remove(handler_id)
        assert "refresh details" in sink.getvalue()
