"""Unit tests for coursegate logging configuration."""

import logging
from pathlib import Path

import pytest

from coursegate.logging import get_logger, sanitize_for_log, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    """Detach handlers so each test starts clean."""
    yield
    logger = logging.getLogger("coursegate")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_creates_log_file_in_nested_dir(self, tmp_path: Path) -> None:
        """Missing directories are created along with the log file."""
        log_dir = tmp_path / "var" / "logs"
        setup_logging(log_dir=log_dir, console=False)

        assert (log_dir / "coursegate.log").exists()

    def test_component_records_reach_file(self, tmp_path: Path) -> None:
        """Admission and catalog loggers share the coursegate file."""
        setup_logging(log_dir=tmp_path, console=False)

        logging.getLogger("coursegate.admission.service").info("admitted s-1")
        logging.getLogger("coursegate.catalog.catalog").info("graph rebuilt")

        content = (tmp_path / "coursegate.log").read_text()
        assert " | INFO" in content
        assert "coursegate.admission.service | admitted s-1" in content
        assert "graph rebuilt" in content

    def test_level_filters_records(self, tmp_path: Path) -> None:
        """Records below the configured level are dropped."""
        logger = setup_logging(log_dir=tmp_path, level="WARNING", console=False)
        logger.info("quiet")
        logger.warning("loud")

        content = (tmp_path / "coursegate.log").read_text()
        assert "quiet" not in content
        assert "loud" in content

    def test_env_sets_level_and_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """COURSEGATE_LOG_LEVEL and COURSEGATE_LOG_DIR are honoured."""
        monkeypatch.setenv("COURSEGATE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("COURSEGATE_LOG_DIR", str(tmp_path))

        logger = setup_logging(console=False)

        assert logger.level == logging.DEBUG
        assert (tmp_path / "coursegate.log").exists()

    def test_repeated_setup_keeps_one_handler(self, tmp_path: Path) -> None:
        """Calling setup twice doesn't duplicate output."""
        setup_logging(log_dir=tmp_path, console=False)
        logger = setup_logging(log_dir=tmp_path, console=False)

        assert logger.name == "coursegate"
        assert len(logger.handlers) == 1

    def test_rotation_limits(self, tmp_path: Path) -> None:
        """The file handler rotates at the configured size."""
        logger = setup_logging(log_dir=tmp_path, max_bytes=400, backup_count=2, console=False)

        for i in range(40):
            logger.info("Enrollment decision %d for a fairly long student identifier", i)

        assert (tmp_path / "coursegate.log.1").exists()
        assert not (tmp_path / "coursegate.log.3").exists()


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger function."""

    def test_prefixes_name(self) -> None:
        """Component names get the coursegate prefix."""
        assert get_logger("cli").name == "coursegate.cli"

    def test_no_double_prefix(self) -> None:
        """Already prefixed names are kept."""
        assert get_logger("coursegate.api").name == "coursegate.api"


@pytest.mark.unit
class TestSanitizeForLog:
    """Tests for sanitize_for_log function."""

    def test_masks_email(self) -> None:
        """Only the first character and the domain survive."""
        assert sanitize_for_log("student ada.lovelace@example.edu") == (
            "student a***@example.edu"
        )

    def test_masks_bearer_token(self) -> None:
        """Bearer tokens are removed."""
        result = sanitize_for_log("Authorization: Bearer abc.def-123")
        assert result == "Authorization: Bearer [REDACTED]"

    def test_plain_text_unchanged(self) -> None:
        """Text without sensitive data passes through."""
        assert sanitize_for_log("CSE302 requires CSE101") == "CSE302 requires CSE101"

    def test_escapes_line_breaks(self) -> None:
        """A value carrying newlines stays on one log line."""
        assert sanitize_for_log("s-1\nINFO forged") == "s-1\\nINFO forged"
        assert sanitize_for_log("s-1\r\n") == "s-1\\r\\n"
