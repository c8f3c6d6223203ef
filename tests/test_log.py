"""
Tests for log.py - line format and optional file sink.
"""

import re

import rj.utils.log as log_module
from rj.utils.log import log_line, setup_logging


class TestLogLine:

    def test_prefix_format(self, capsys):
        log_line("MERGE | x")
        out = capsys.readouterr().out.strip()
        assert re.match(r"^\d{4}-\d{2}-\d{2} // \d{2}:\d{2}:\d{2}[+-]\d{2}:\d{2} - MERGE \| x$", out)

    def test_file_sink(self, tmp_path):
        try:
            path = setup_logging(tmp_path)
            log_line("hello")
            assert path.read_text(encoding="utf-8").rstrip().endswith("- hello")
        finally:
            setup_logging(None)
        assert log_module.LOG_PATH is None
