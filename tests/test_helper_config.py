"""Unit tests for shared.helper.HelperConfig, HelperTracer and the log formatters."""

from __future__ import annotations

import logging
import os

import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTracer import HelperTracer
from shared.logging.logging_setup import ColoredFormatter, CustomFormatter, get_log_level


class TestHelperConfig:
    def test_string_default_when_unset(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.delenv("SOME_STRING", raising=False)
        assert helper_config.get_string_val("SOME_STRING", default="fallback") == "fallback"

    def test_string_missing_without_default_raises(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.delenv("SOME_STRING", raising=False)
        with pytest.raises(ValueError, match="SOME_STRING"):
            helper_config.get_string_val("SOME_STRING")

    def test_key_is_case_insensitive(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.setenv("SOME_STRING", "  value  ")
        assert helper_config.get_string_val("some_string") == "value"

    def test_number_parsing(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.setenv("SOME_INT", "12")
        monkeypatch.setenv("SOME_FLOAT", "0.5")
        assert helper_config.get_number_val("SOME_INT") == 12
        assert helper_config.get_number_val("SOME_FLOAT") == 0.5

    def test_invalid_number_raises(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.setenv("SOME_INT", "twelve")
        with pytest.raises(ValueError, match="not a valid number"):
            helper_config.get_number_val("SOME_INT")

    @pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("YES", True), ("no", False)])
    def test_bool_parsing(self, helper_config: HelperConfig, monkeypatch, raw, expected):
        monkeypatch.setenv("SOME_FLAG", raw)
        assert helper_config.get_bool_val("SOME_FLAG") is expected

    def test_list_parsing(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.setenv("SOME_LIST", "[.pdf, .md ,.txt]")
        assert helper_config.get_list_val("SOME_LIST") == [".pdf", ".md", ".txt"]

    def test_list_without_brackets_raises(self, helper_config: HelperConfig, monkeypatch):
        monkeypatch.setenv("SOME_LIST", ".pdf,.md")
        with pytest.raises(ValueError, match="format"):
            helper_config.get_list_val("SOME_LIST")

    def test_relative_path_resolved_against_root_dir(self, helper_config: HelperConfig, monkeypatch, tmp_path):
        monkeypatch.setenv("ROOT_DIR", str(tmp_path))
        monkeypatch.delenv("STATE_DB_PATH", raising=False)
        resolved = helper_config.get_path_val("STATE_DB_PATH", default="data/state.db")
        assert resolved == os.path.join(str(tmp_path), "data/state.db")

    def test_absolute_path_kept(self, helper_config: HelperConfig, monkeypatch, tmp_path):
        monkeypatch.setenv("STATE_DB_PATH", str(tmp_path / "x.db"))
        assert helper_config.get_path_val("STATE_DB_PATH") == str(tmp_path / "x.db")


class TestHelperTracer:
    def test_activity_records_tags_and_duration(self, tracer: HelperTracer):
        with tracer.start_activity("unit.work", item="a") as activity:
            activity.set_tag("count", 3)

        [recorded] = tracer.get_history()
        assert recorded.name == "unit.work"
        assert recorded.tags == {"item": "a", "count": 3}
        assert recorded.status == "ok"
        assert recorded.duration_ms is not None

    def test_exception_marks_activity_failed_and_propagates(self, tracer: HelperTracer):
        with pytest.raises(RuntimeError, match="boom"):
            with tracer.start_activity("unit.fail"):
                raise RuntimeError("boom")

        [recorded] = tracer.get_history()
        assert recorded.status == "error"
        assert "RuntimeError: boom" in recorded.error

    def test_history_is_bounded(self, helper_config: HelperConfig):
        tracer = HelperTracer(helper_config, keep_history=2)
        for i in range(5):
            with tracer.start_activity(f"unit.{i}"):
                pass
        assert [a.name for a in tracer.get_history()] == ["unit.3", "unit.4"]


class TestLogFormatting:
    @staticmethod
    def _record(level: int, msg: str, *args, color: str | None = None) -> logging.LogRecord:
        record = logging.LogRecord("tests", level, __file__, 1, msg, args, None)
        if color is not None:
            record.color = color
        return record

    def test_warning_is_marked_once_per_handler(self):
        console = ColoredFormatter("UTC", "%(message)s")
        file = CustomFormatter("UTC", "%(message)s")
        record = self._record(logging.WARNING, "hit %s dropped", "abc")

        assert console.format(record) == "⚠️ hit abc dropped"
        assert file.format(record) == "⚠️ hit abc dropped"
        assert record.msg == "hit %s dropped"
        assert record.args == ("abc",)

    def test_color_only_on_console(self):
        record = self._record(logging.INFO, "scan complete", color="green")

        assert ColoredFormatter("UTC", "%(message)s").format(record) == "\033[32mscan complete\033[0m"
        assert CustomFormatter("UTC", "%(message)s").format(record) == "scan complete"

    def test_mismatched_arguments_keep_the_template(self):
        record = self._record(logging.ERROR, "failed %d", "not-a-number")

        assert CustomFormatter("UTC", "%(message)s").format(record) == "⛔ failed %d"

    def test_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert get_log_level() == logging.DEBUG
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert get_log_level() == logging.INFO
