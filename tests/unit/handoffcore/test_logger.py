"""Tests for the append-only validation log sink."""

import logging
import re
import sys

from handoffcore.logger import close_validation_logger, get_validation_logger

LINE = re.compile(
    r"^\[\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?\+00:00\] TestContractValidator: (.*)$"
)


class TestValidationLogger:
    def test_writes_formatted_line(self, log_file):
        log = get_validation_logger(str(log_file))
        log.info("Contract parsing failed: boom")

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        match = LINE.match(lines[0])
        assert match is not None
        assert match.group(1) == "Contract parsing failed: boom"

    def test_appends(self, log_file):
        log_file.write_text("existing line\n")
        log = get_validation_logger(str(log_file))
        log.info("second")

        assert log_file.read_text().splitlines()[0] == "existing line"
        assert log_file.read_text().splitlines()[1].endswith("second")

    def test_single_handler_per_path(self, log_file):
        first = get_validation_logger(str(log_file))
        second = get_validation_logger(str(log_file))

        assert first is second
        assert len([h for h in first.handlers if isinstance(h, logging.FileHandler)]) == 1

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "validation.log"
        log = get_validation_logger(str(path))
        log.info("hello")
        close_validation_logger(str(path))

        assert path.exists()

    def test_debug_mirrors_to_stdout(self, log_file, capsys):
        log = get_validation_logger(str(log_file), debug=True)
        log.info("mirrored")

        out = capsys.readouterr().out
        assert "TestContractValidator: mirrored" in out

    def test_without_debug_stdout_is_quiet(self, log_file):
        log = get_validation_logger(str(log_file))

        assert not any(
            type(h) is logging.StreamHandler and h.stream is sys.stdout
            for h in log.handlers
        )

    def test_propagates_to_root(self, log_file, caplog):
        log = get_validation_logger(str(log_file))
        with caplog.at_level(logging.INFO):
            log.info("visible to caplog")

        assert "visible to caplog" in caplog.messages

    def test_close_detaches_handlers(self, tmp_path):
        path = tmp_path / "closed.log"
        log = get_validation_logger(str(path))
        close_validation_logger(str(path))

        assert log.handlers == []
