"""Internal, platform and tail logging.

The emulator deals with several kinds of log output:

* internal logs: its own operational messages, formatted with
  :class:`InternalFormatter` like the rest of the sandbox log;
* platform logs: lines the emulator generates for the customer's log
  stream, written through :class:`PlatformLogger`;
* tail logs: a copy of function and platform logs returned with the invoke
  response when debug logging is requested, gated by :class:`TailLogWriter`.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence, TextIO

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_output_handler: Optional[logging.StreamHandler] = None
_output_lock = threading.Lock()


class Writer(Protocol):
    """Anything with a text ``write`` method."""

    def write(self, data: str) -> int: ...


def set_output(stream: TextIO) -> logging.StreamHandler:
    """Send records of the root logger to ``stream`` and return the handler.

    Repeated calls redirect the same handler, keeping its formatter. The root
    level is lowered to INFO if it is stricter, so informational messages
    reach the stream.
    """
    global _output_handler
    root = logging.getLogger()
    with _output_lock:
        if _output_handler is None:
            _output_handler = logging.StreamHandler(stream)
        else:
            _output_handler.setStream(stream)
        if _output_handler not in root.handlers:
            root.addHandler(_output_handler)
    if root.level == logging.NOTSET or root.level > logging.INFO:
        root.setLevel(logging.INFO)
    return _output_handler


class InternalFormatter(logging.Formatter):
    """Formats internal records like the rest of the sandbox log.

    Key/value pairs can be attached with ``extra={"fields": {...}}``; an
    exception passed through ``exc_info`` is shown as an ``error`` field.
    """

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created)
        time_text = (
            f"{stamp.day:02d} {_MONTHS[stamp.month - 1]} {stamp.year:04d} "
            f"{stamp:%H:%M:%S},{int(record.msecs):03d}"
        )
        parts = [
            time_text,
            f"[{record.levelname.upper()}]",
            "(rapid)",
            record.getMessage(),
        ]
        fields = dict(getattr(record, "fields", None) or {})
        if record.exc_info and record.exc_info[1] is not None:
            fields.setdefault("error", record.exc_info[1])
        parts.extend(f"{name}={value}" for name, value in fields.items())
        return " ".join(parts)


class PlatformLogger:
    """Writes platform lines to the customer's log and to the tail log."""

    def __init__(self, output: Writer, tail_log_writer: Writer) -> None:
        self._writers = (output, tail_log_writer)
        self._lock = threading.Lock()

    def _emit(self, line: str) -> None:
        with self._lock:
            for writer in self._writers:
                writer.write(line)

    def log_extension_init_event(
        self,
        agent_name: str,
        state: str,
        error_type: str,
        subscriptions: Sequence[str],
    ) -> None:
        """Log a line describing an extension's init state."""
        line = (
            f"EXTENSION\tName: {agent_name}\tState: {state}"
            f"\tEvents: [{','.join(subscriptions)}]"
        )
        if error_type:
            line += f"\tError Type: {error_type}"
        self._emit(line + "\n")

    def printf(self, fmt: str, *args: object) -> None:
        """Log a %-formatted line; lines are newline separated."""
        text = fmt % args if args else fmt
        self._emit(text + "\n")


def supernova_invalid_task_config_repr(err: object) -> Callable[[object], str]:
    """Return a renderer for an invalid task configuration error."""

    def render(_unused: object) -> str:
        return f"IMAGE\tInvalid task config: {err}"

    return render


def supernova_launch_error_repr(
    entrypoint: Sequence[str], cmd: Sequence[str], working_dir: str
) -> Callable[[object], str]:
    """Return a renderer for an image launch error."""

    def render(err: object) -> str:
        return (
            f"IMAGE\tLaunch error: {err}\tEntrypoint: [{','.join(entrypoint)}]"
            f"\tCmd: [{','.join(cmd)}]\tWorkingDir: [{working_dir}]"
        )

    return render


class TailLogWriter:
    """Forwards writes to ``out`` only while enabled; disabled by default."""

    def __init__(self, out: Writer) -> None:
        self._out = out
        self._enabled = False
        self._lock = threading.Lock()

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    def write(self, data: str) -> int:
        """Write ``data`` if enabled; always report it as written."""
        with self._lock:
            if self._enabled:
                return self._out.write(data)
            return len(data)