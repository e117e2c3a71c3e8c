import io
import logging
import re
from datetime import datetime

import pytest

from lambdarie.logging import (
    InternalFormatter,
    PlatformLogger,
    TailLogWriter,
    set_output,
    supernova_invalid_task_config_repr,
    supernova_launch_error_repr,
)

PATTERN = (
    r"^([0-9]{2}\s[A-Za-z]{3}\s[0-9]{4}\s[0-9]{2}:[0-9]{2}:[0-9]{2}(?:,[0-9]{3})?)"
    r"\s(?:\s\{sandbox:([0-9]+)\}\s)?\[([A-Za-z]+)\]\s(\(([^\)]+)\)"
    r"(?:\s\[Logging Metrics\]\sSBLOG:([a-zA-Z:]+) ([0-9]+))?\s?.*)"
)

logger = logging.getLogger("lambdarie.tests.logging")


@pytest.fixture
def output():
    buffer = io.StringIO()
    handler = set_output(buffer)
    yield buffer, handler
    handler.setFormatter(None)


def _reset(buffer):
    buffer.seek(0)
    buffer.truncate()


def test_log_print(output):
    buffer, _ = output
    logger.warning("hello log")
    assert "hello log" in buffer.getvalue()


def test_info_print(output):
    buffer, _ = output
    logger.info("hello logrus")
    assert "hello logrus" in buffer.getvalue()


def test_internal_formatter_pattern(output):
    buffer, handler = output
    handler.setFormatter(InternalFormatter())

    logger.info("hello logrus")
    assert re.match(PATTERN, buffer.getvalue())

    _reset(buffer)
    logger.warning("hello logrus", extra={"fields": {"error": ValueError("error message")}})
    assert re.match(PATTERN, buffer.getvalue())
    assert "error=error message" in buffer.getvalue()

    _reset(buffer)
    fields = {"field1": "val1", "field2": "val2", "field3": "val3"}
    logger.info("hello logrus", extra={"fields": fields})
    assert re.match(PATTERN, buffer.getvalue())

    _reset(buffer)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.info("hello logrus")
    assert not re.match(PATTERN, buffer.getvalue())


def _record(message, args=(), level=logging.INFO):
    record = logging.LogRecord("rapid", level, __file__, 1, message, args, None)
    record.created = datetime(2020, 1, 2, 3, 4, 5).timestamp()
    record.msecs = 123
    return record


def test_internal_formatter_exact_line():
    record = _record("hello %s", ("logrus",))
    assert InternalFormatter().format(record) == "02 Jan 2020 03:04:05,123 [INFO] (rapid) hello logrus"


def test_internal_formatter_fields_and_level():
    record = _record("hello logrus", level=logging.WARNING)
    record.fields = {"field1": "val1", "field2": "val2"}
    line = InternalFormatter().format(record)
    assert " [WARNING] (rapid) hello logrus" in line
    assert line.endswith(" field1=val1 field2=val2")


def test_platform_log_extension_line():
    buf, tail = io.StringIO(), io.StringIO()
    platform = PlatformLogger(buf, tail)
    platform.log_extension_init_event("agentName", "Registered", "", ["INVOKE", "SHUTDOWN"])
    expected = "EXTENSION\tName: agentName\tState: Registered\tEvents: [INVOKE,SHUTDOWN]\n"
    assert buf.getvalue() == expected
    assert tail.getvalue() == expected


def test_platform_log_extension_line_with_error():
    buf, tail = io.StringIO(), io.StringIO()
    platform = PlatformLogger(buf, tail)
    error_type = "Extension.FooBar"
    platform.log_extension_init_event("agentName", "Registered", error_type, ["INVOKE", "SHUTDOWN"])
    expected = (
        "EXTENSION\tName: agentName\tState: Registered\tEvents: [INVOKE,SHUTDOWN]"
        "\tError Type: " + error_type + "\n"
    )
    assert buf.getvalue() == expected
    assert tail.getvalue() == expected


def test_platform_log_printf():
    buf, tail = io.StringIO(), io.StringIO()
    platform = PlatformLogger(buf, tail)
    platform.printf("bebe %s %d", "as", 12)
    assert buf.getvalue() == "bebe as 12\n"
    assert tail.getvalue() == "bebe as 12\n"


def test_platform_log_goes_to_tail_writer_only_when_enabled():
    buf, tail_out = io.StringIO(), io.StringIO()
    tail = TailLogWriter(tail_out)
    platform = PlatformLogger(buf, tail)
    platform.printf("first")
    tail.enable()
    platform.printf("second")
    assert buf.getvalue() == "first\nsecond\n"
    assert tail_out.getvalue() == "second\n"


def test_supernova_invalid_task_config_repr():
    render = supernova_invalid_task_config_repr(ValueError("boom"))
    assert render(RuntimeError("ignored")) == "IMAGE\tInvalid task config: boom"


def test_supernova_launch_error_repr():
    render = supernova_launch_error_repr(["/bin/sh", "-c"], ["run", "it"], "/work")
    assert render(OSError("failed")) == (
        "IMAGE\tLaunch error: failed\tEntrypoint: [/bin/sh,-c]\tCmd: [run,it]\tWorkingDir: [/work]"
    )


def test_disable_debug_log():
    buf = io.StringIO()
    writer = TailLogWriter(buf)
    writer.disable()
    assert writer.write("hello_world") == len("hello_world")
    assert len(buf.getvalue()) == 0


def test_enable_debug_log():
    buf = io.StringIO()
    writer = TailLogWriter(buf)
    writer.enable()
    writer.write("hello_world")
    assert buf.getvalue() == "hello_world"


def test_tail_log_writer_disabled_by_default():
    buf = io.StringIO()
    writer = TailLogWriter(buf)
    writer.write("hello_world")
    assert buf.getvalue() == ""