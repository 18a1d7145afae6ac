from __future__ import annotations

import io
import logging

import pytest

from stak_metrics.logger import (
    TRACE,
    ColoredFormatter,
    get_logger,
    resolve_level,
    setup_logging,
    trace,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in ("urllib3", "backoff"):
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("trace", TRACE),
        ("DEBUG", logging.DEBUG),
        ("warning", logging.WARNING),
        ("nonsense", logging.INFO),
    ],
)
def test_resolve_level(name, expected):
    assert resolve_level(name) == expected


def test_setup_logging_writes_plain_text_to_stream():
    stream = io.StringIO()

    setup_logging("DEBUG", stream=stream)
    get_logger("stak_metrics.test").debug("decoded %s", "1496")

    output = stream.getvalue()
    assert "DEBUG" in output
    assert "stak_metrics.test: decoded 1496" in output
    assert "\033[" not in output


def test_setup_logging_quiets_noisy_loggers():
    setup_logging("DEBUG", stream=io.StringIO())

    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logging.getLogger("backoff").level == logging.WARNING


def test_trace_level_opens_noisy_loggers():
    stream = io.StringIO()

    setup_logging("TRACE", stream=stream)
    trace(get_logger("stak_metrics.test"), "payload %s", {"data": {}})

    assert logging.getLogger("urllib3").level == TRACE
    assert "TRACE" in stream.getvalue()
    assert "payload {'data': {}}" in stream.getvalue()


def test_trace_is_dropped_above_trace_level():
    stream = io.StringIO()

    setup_logging("INFO", stream=stream)
    trace(get_logger("stak_metrics.test"), "hidden")

    assert stream.getvalue() == ""


def test_colored_formatter_restores_levelname():
    formatter = ColoredFormatter(fmt="%(levelname)s %(message)s", use_color=True)
    record = logging.LogRecord(
        "stak_metrics", logging.WARNING, __file__, 1, "careful", None, None
    )

    output = formatter.format(record)

    assert output.startswith("\033[33m")
    assert "careful" in output
    assert record.levelname == "WARNING"
