"""Tests for logging setup and contextual fields."""

from __future__ import annotations

import json
import logging

import pytest

from svg_toolpath.utils.logging_config import (
    ContextFormatter,
    conversion_context,
    get_context,
    pop_context,
    push_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def clean_context():
    pop_context()
    yield
    pop_context()


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("svg_toolpath.test", logging.INFO, __file__, 1, msg, None, None)


class TestContext:
    def test_push_and_pop(self) -> None:
        push_context(conversion=1, document="a.svg")
        assert get_context() == {"conversion": 1, "document": "a.svg"}
        pop_context(["document"])
        assert get_context() == {"conversion": 1}
        pop_context()
        assert get_context() == {}

    def test_conversion_context_restores(self) -> None:
        push_context(app="batch")
        with conversion_context(conversion=7):
            assert get_context() == {"app": "batch", "conversion": 7}
        assert get_context() == {"app": "batch"}

    def test_conversion_context_restores_on_error(self) -> None:
        with pytest.raises(RuntimeError), conversion_context(conversion=8):
            raise RuntimeError("boom")
        assert get_context() == {}


class TestFormatter:
    def test_human_includes_context(self) -> None:
        push_context(conversion=3)
        line = ContextFormatter("human", use_color=False).format(_record())
        assert "| conversion=3 |" in line
        assert line.endswith("hello")

    def test_json(self) -> None:
        push_context(conversion=4)
        data = json.loads(ContextFormatter("json", use_color=False).format(_record()))
        assert data["conversion"] == 4
        assert data["lvl"] == "INFO"
        assert data["msg"] == "hello"

    def test_bad_mode(self) -> None:
        with pytest.raises(ValueError):
            ContextFormatter("xml")


class TestSetup:
    def test_idempotent_and_file_handler(self, tmp_path) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        for handler in saved_handlers:
            root.removeHandler(handler)
        try:
            setup_logging("DEBUG", str(tmp_path / "logs" / "run.log"), to_stderr=False)
            handlers = setup_logging("INFO", str(tmp_path / "logs" / "run.log"),
                                     to_stderr=False, json=True)
            assert len(handlers) == 1
            assert root.level == logging.INFO
            logging.getLogger("svg_toolpath.test").info("written")
            handlers[0].flush()
            content = (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")
            assert '"msg": "written"' in content
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
            logging.captureWarnings(False)

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError):
            setup_logging("LOUD", to_stderr=False)
