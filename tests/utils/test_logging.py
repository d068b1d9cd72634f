# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the structured JSON logger.

We verify:
  - output is valid JSON on stderr, nothing on stdout
  - all mandatory fields are present (ts, level, module, msg)
  - log levels filter correctly
  - extra context fields get merged into the JSON
"""

import json
import logging
from pathlib import Path

import pytest

from makerel.logging.logger import get_logger, set_package_log_level


@pytest.fixture(autouse=True)
def _reset_loggers() -> None:
    """Clear test logger handlers so each test gets fresh capture streams."""
    yield  # type: ignore[misc]
    for name in list(logging.Logger.manager.loggerDict):
        if name.startswith("makerel.test"):
            logging.getLogger(name).handlers.clear()


class TestJsonOutput:
    def test_output_is_json_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("makerel.test.json", log_level="INFO")
        logger.info("hello")
        captured = capsys.readouterr()

        assert captured.out == ""
        parsed = json.loads(captured.err.strip())
        assert isinstance(parsed, dict)

    def test_mandatory_fields_are_present(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("makerel.test.fields", log_level="INFO")
        logger.info("test message")
        parsed = json.loads(capsys.readouterr().err.strip())

        assert parsed["level"] == "INFO"
        assert parsed["module"] == "makerel.test.fields"
        assert parsed["msg"] == "test message"
        assert "ts" in parsed

    def test_extra_fields_are_included(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("makerel.test.extra", log_level="DEBUG")
        logger.info("staged", extra={"files": 9, "release_dir": "/tmp/perl-5.40.0"})
        parsed = json.loads(capsys.readouterr().err.strip())

        assert parsed["files"] == 9
        assert parsed["release_dir"] == "/tmp/perl-5.40.0"


class TestLogLevels:
    def test_debug_hidden_at_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("makerel.test.level_filter", log_level="INFO")
        logger.debug("this should not appear")
        assert capsys.readouterr().err.strip() == ""

    def test_package_level_applies_to_existing_loggers(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        logger = get_logger("makerel.test.package_level", log_level="INFO")
        set_package_log_level("ERROR")
        logger.warning("quiet now")
        assert capsys.readouterr().err.strip() == ""
        set_package_log_level("INFO")

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            get_logger("makerel.test.invalid", log_level="INVALID")


class TestFileOutput:
    def test_logs_are_written_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "makerel.log"
        logger = get_logger("makerel.test.file_output", log_level="INFO", log_file=log_file)
        logger.info("file log test")

        parsed = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert parsed["msg"] == "file log test"
