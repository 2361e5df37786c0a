"""
Unit tests for SystemReporter.

Usage:
    pytest tests/unit/reporter/test_system_reporter.py
"""

import tempfile
from pathlib import Path

from shared.reporter import SystemReporter
from shared.tests import LaborantTest


class TestSystemReporter(LaborantTest):
    """Unit tests for SystemReporter."""

    component_name = "shared.reporter"
    test_category = "unit"

    def test_file_logging_with_context_tags(self):
        """Test messages reach the log file tagged with their context."""
        self.reporter.info("Testing file logging", context="Test")

        with tempfile.TemporaryDirectory() as log_dir:
            reporter = SystemReporter(name="reporter_file_test", log_dir=log_dir)
            reporter.warning("Force-closed 2 connections", context="Shutdown")
            reporter.flush()

            assert reporter.log_file == str(Path(log_dir) / "reporter_file_test.log")
            content = Path(reporter.log_file).read_text()

            for handler in list(reporter.logger.handlers):
                handler.close()
                reporter.logger.removeHandler(handler)

        assert "WARNING" in content
        assert "[Shutdown] Force-closed 2 connections" in content

        self.reporter.info("File logging works", context="Test")

    def test_verbose_filtering(self):
        """Test messages above the verbosity level are dropped."""
        self.reporter.info("Testing verbose filtering", context="Test")

        with tempfile.TemporaryDirectory() as log_dir:
            reporter = SystemReporter(
                name="reporter_verbose_test", log_dir=log_dir, verbose=1
            )
            reporter.info("kept", context="Test", verbose_level=1)
            reporter.info("dropped", context="Test", verbose_level=2)
            reporter.error("always kept", context="Test")
            reporter.flush()

            content = Path(reporter.log_file).read_text()

            for handler in list(reporter.logger.handlers):
                handler.close()
                reporter.logger.removeHandler(handler)

        assert "[Test] kept" in content
        assert "dropped" not in content
        assert "[Test] always kept" in content

        self.reporter.info("Verbose filtering works", context="Test")


if __name__ == "__main__":
    TestSystemReporter.run_as_main()
