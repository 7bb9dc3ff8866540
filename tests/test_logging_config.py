# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from shopsmart.config.logging_config import setup_logging


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        """Reset the shopsmart logger and use a scratch logs/ dir."""
        self._clear_handlers()
        self._tmp = Path(tempfile.mkdtemp())
        self.logs_dir = self._tmp / "logs"

    def tearDown(self) -> None:
        self._clear_handlers()
        shutil.rmtree(self._tmp, ignore_errors=True)

    @staticmethod
    def _clear_handlers() -> None:
        root_logger = logging.getLogger("shopsmart")
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

    def test_setup_creates_log_file(self) -> None:
        """setup_logging returns a path that exists on disk."""
        log_path = setup_logging(self.logs_dir)
        self.assertTrue(log_path.exists())

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging(self.logs_dir)
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_file_handler_level_debug(self) -> None:
        """File handler should be set to DEBUG level."""
        setup_logging(self.logs_dir)
        root_logger = logging.getLogger("shopsmart")
        file_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(file_handlers), 1)
        self.assertEqual(file_handlers[0].level, logging.DEBUG)

    def test_console_handler_level_warning(self) -> None:
        """Console handler should be set to WARNING level."""
        setup_logging(self.logs_dir)
        root_logger = logging.getLogger("shopsmart")
        stream_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(stream_handlers), 1)
        self.assertEqual(stream_handlers[0].level, logging.WARNING)

    def test_repeated_calls_no_duplicate_handlers(self) -> None:
        """Calling setup_logging twice does not duplicate handlers."""
        setup_logging(self.logs_dir)
        root_logger = logging.getLogger("shopsmart")
        count_before = len(root_logger.handlers)
        setup_logging(self.logs_dir)
        self.assertEqual(len(root_logger.handlers), count_before)

    def test_repeated_call_returns_first_run_file(self) -> None:
        """A second call hands back the file the first call opened."""
        first = setup_logging(self.logs_dir)
        second = setup_logging(self._tmp / "elsewhere")
        self.assertEqual(second, first)
        self.assertTrue(second.exists())
        self.assertEqual(list(self.logs_dir.iterdir()), [first])

    def test_child_loggers_reach_file(self) -> None:
        """Records from shopsmart.* children land in the run log."""
        log_path = setup_logging(self.logs_dir)
        logging.getLogger("shopsmart.jumia").info("child record")
        for handler in logging.getLogger("shopsmart").handlers:
            handler.flush()
        self.assertIn("child record", log_path.read_text("utf-8"))

    def test_log_file_inside_logs_dir(self) -> None:
        """Log file is created inside the given logs/ directory."""
        log_path = setup_logging(self.logs_dir)
        self.assertEqual(log_path.parent, self.logs_dir)


if __name__ == "__main__":
    unittest.main()
