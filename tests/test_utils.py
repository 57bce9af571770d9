"""Tests for the URL, formatting and structured logging helpers."""

import json
import logging

import pytest

from mdown.exceptions import InvalidUrlError
from mdown.utils.formatting import format_duration, format_range, format_rate, format_size
from mdown.utils.path import FALLBACK_FILENAME, output_name_from_url, validate_url
from mdown.utils.structured_logger import StructuredLogger, create_event_logger


class TestValidateUrl:
    def test_accepts_http_and_https(self):
        assert validate_url(" https://example.com/a.iso ") == "https://example.com/a.iso"
        assert validate_url("http://example.com:8080/a") == "http://example.com:8080/a"

    @pytest.mark.parametrize(
        "url", ["", "   ", "example.com/a.iso", "ftp://example.com/a.iso", "http:///a"]
    )
    def test_rejects_unusable_urls(self, url):
        with pytest.raises(InvalidUrlError):
            validate_url(url)

    def test_empty_url_message(self):
        with pytest.raises(InvalidUrlError, match="No url given."):
            validate_url("")


class TestOutputName:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("http://example.com/files/data.bin", "data.bin"),
            ("http://example.com/files/data.bin?token=abc#frag", "data.bin"),
            ("http://example.com/files/my%20file.zip", "my file.zip"),
            ("http://example.com/", FALLBACK_FILENAME),
            ("http://example.com", FALLBACK_FILENAME),
            ("http://example.com/files/..", FALLBACK_FILENAME),
        ],
    )
    def test_basename(self, url, expected):
        assert output_name_from_url(url) == expected

    def test_strips_unsafe_characters(self):
        name = output_name_from_url("http://example.com/a%3Cb%3E%3F.txt")
        assert "<" not in name and ">" not in name and "?" not in name
        assert name.endswith(".txt")


class TestFormatting:
    def test_format_size(self):
        assert format_size(0) == "0 B"
        assert format_size(512) == "512 B"
        assert format_size(1536) == "1.5 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"

    def test_format_rate(self):
        assert format_rate(512) == "512.00 KB/s"
        assert format_rate(2048) == "2.00 MB/s"

    def test_format_duration(self):
        assert format_duration(0) == "0s"
        assert format_duration(61) == "1m 1s"
        assert format_duration(3600) == "1h"

    def test_format_range(self):
        assert format_range(0, 1000) == "[0, 1,000)"


class TestStructuredLogger:
    def test_writes_json_lines(self, tmp_path):
        base, events = create_event_logger(tmp_path / "logs", enable_json=True)
        with base:
            events.job_started("http://example.com/a.bin", 1000, 4)
            events.segment_split(0, 2, 600, 150)
            events.job_failed("boom", 250)

        lines = base.json_log_path.read_text(encoding="utf-8").splitlines()
        entries = [json.loads(line) for line in lines]

        assert [e["event"] for e in entries] == [
            "job_started",
            "segment_split",
            "job_failed",
        ]
        assert all(e["url"] == "http://example.com/a.bin" for e in entries)
        assert entries[1]["split_point"] == 600
        assert entries[2]["level"] == "ERROR"

    def test_json_disabled_without_log_dir(self):
        logger = StructuredLogger("mdown.test", log_dir=None, enable_json=True)
        assert logger.json_log_path is None
        logger.info("noop", value=1)
        logger.close()

    def test_console_message(self, caplog):
        logger = StructuredLogger("mdown.test", enable_json=False)
        with caplog.at_level(logging.WARNING, logger="mdown.test"):
            logger.warning("segment_retry", segment=1, attempt=2)
        assert "segment_retry: segment=1 attempt=2" in caplog.text
