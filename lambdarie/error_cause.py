"""Validation and compaction of X-Ray error causes reported by runtimes."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, TypeVar, Union

MAX_ERROR_CAUSE_SIZE_BYTES = 64 << 10
PADDING_FOR_FIELD_NAMES = 4096

_TRUNCATION_FACTORS = (0.8, 0.6, 0.4, 0.2)
_CROPPED_STRING_LENGTH = (MAX_ERROR_CAUSE_SIZE_BYTES - PADDING_FOR_FIELD_NAMES) // 2
_TRUNCATION_INDICATOR = "..."
_MIN_INT, _MAX_INT = -(1 << 63), (1 << 63) - 1
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")

_HTML_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)

T = TypeVar("T")
JsonInput = Union[str, bytes, bytearray, memoryview]


class ErrorCauseError(ValueError):
    """Raised when an error cause cannot be parsed or has an invalid format."""


@dataclass
class ExceptionStackFrame:
    path: str = ""
    line: int = 0
    label: str = ""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.path:
            body["path"] = self.path
        if self.line:
            body["line"] = self.line
        if self.label:
            body["label"] = self.label
        return body


@dataclass
class CauseException:
    message: str = ""
    type: str = ""
    stack: Optional[list[ExceptionStackFrame]] = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.message:
            body["message"] = self.message
        if self.type:
            body["type"] = self.type
        if self.stack:
            body["stack"] = [frame.to_dict() for frame in self.stack]
        return body


def _marshal(value: Any) -> bytes:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return text.translate(_HTML_ESCAPES).encode("utf-8", "replace")


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _object(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ErrorCauseError(f"cannot unmarshal {_kind(value)} into {name} of type object")
    # Field names match case-insensitively; a later key overrides an earlier one.
    return {key.lower(): item for key, item in value.items()}


def _string(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ErrorCauseError(f"cannot unmarshal {_kind(value)} into field {name} of type string")
    return _LONE_SURROGATE.sub("\ufffd", value)


def _int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ErrorCauseError(f"cannot unmarshal {_kind(value)} {value!r} into field {name} of type int")
    if not _MIN_INT <= value <= _MAX_INT:
        raise ErrorCauseError(f"number {value} overflows field {name} of type int")
    return value


def _list(value: Any, name: str, item: Callable[[Any], T]) -> Optional[list[T]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ErrorCauseError(f"cannot unmarshal {_kind(value)} into field {name} of type array")
    return [item(element) for element in value]


def _frame(value: Any) -> ExceptionStackFrame:
    fields = _object(value, "stack frame")
    return ExceptionStackFrame(
        path=_string(fields.get("path"), "path"),
        line=_int(fields.get("line"), "line"),
        label=_string(fields.get("label"), "label"),
    )


def _exception(value: Any) -> CauseException:
    fields = _object(value, "exception")
    return CauseException(
        message=_string(fields.get("message"), "message"),
        type=_string(fields.get("type"), "type"),
        stack=_list(fields.get("stack"), "stack", _frame),
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON literal {name}")


def _as_text(data: JsonInput) -> str:
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", "replace")


@dataclass
class ErrorCause:
    """Cause of an error reported by a runtime, with optional stack traces."""

    exceptions: Optional[list[CauseException]] = None
    working_dir: str = ""
    paths: Optional[list[str]] = None
    message: str = ""

    @classmethod
    def from_json(cls, data: JsonInput) -> "ErrorCause":
        """Parse an error cause, raising ErrorCauseError on malformed input."""
        try:
            value = json.loads(_as_text(data), parse_constant=_reject_constant)
        except ValueError as exc:
            raise ErrorCauseError(f"failed to parse error cause JSON: {exc}") from exc
        try:
            fields = _object(value, "ErrorCause")
            return cls(
                exceptions=_list(fields.get("exceptions"), "exceptions", _exception),
                working_dir=_string(fields.get("working_directory"), "working_directory"),
                paths=_list(fields.get("paths"), "paths", lambda item: _string(item, "paths")),
                message=_string(fields.get("message"), "message"),
            )
        except ErrorCauseError as exc:
            raise ErrorCauseError(f"failed to parse error cause JSON: {exc}") from None

    def is_valid(self) -> bool:
        """A cause needs at least one of its fields to be non-empty."""
        return bool(self.working_dir or self.paths or self.exceptions or self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "exceptions": None
            if self.exceptions is None
            else [exception.to_dict() for exception in self.exceptions],
            "working_directory": self.working_dir,
            "paths": None if self.paths is None else list(self.paths),
        }
        if self.message:
            body["message"] = self.message
        return body

    def to_json(self) -> bytes:
        return _marshal(self.to_dict())

    def cropped_json(self) -> bytes:
        """Crop the cause step by step until its JSON fits the size limit."""
        for factor in _TRUNCATION_FACTORS:
            compactor = ErrorCauseCompactor(self)
            compactor.crop(factor)
            encoded = compactor.cause().to_json()
            if len(encoded) <= MAX_ERROR_CAUSE_SIZE_BYTES:
                return encoded
        # Fall back to dropping stack traces and truncating the strings.
        compactor = ErrorCauseCompactor(self)
        compactor.crop(0)
        return compactor.cause().to_json()


class ErrorCauseCompactor:
    """Shrinks a copy of an error cause by a factor in [0, 1]."""

    def __init__(self, cause: ErrorCause) -> None:
        self._cause = replace(cause)

    def _crop_stack_traces(self, factor: float) -> None:
        if factor > 0:
            factor = min(factor, 1.0)
            if self._cause.exceptions is not None:
                keep = int(len(self._cause.exceptions) * factor)
                self._cause.exceptions = self._cause.exceptions[:keep]
            if self._cause.paths is not None:
                keep = int(len(self._cause.paths) * factor)
                self._cause.paths = self._cause.paths[:keep]
            return
        self._cause.exceptions = None
        self._cause.paths = None

    def _crop_strings(self, factor: float) -> None:
        if factor > 0:
            return
        self._cause.message = crop_string(self._cause.message, _CROPPED_STRING_LENGTH)
        self._cause.working_dir = crop_string(self._cause.working_dir, _CROPPED_STRING_LENGTH)

    def crop(self, factor: float) -> None:
        """Keep ``factor`` of the stack traces; at 0 also truncate the strings."""
        self._crop_stack_traces(factor)
        self._crop_strings(factor)

    def cause(self) -> ErrorCause:
        return self._cause


def crop_string(text: str, length: int) -> str:
    """Limit ``text`` to ``length`` UTF-8 bytes, marking a cut with '...'."""
    encoded = text.encode("utf-8", "replace")
    if len(encoded) <= length:
        return text
    keep = max(length - len(_TRUNCATION_INDICATOR), 0)
    return encoded[:keep].decode("utf-8", "ignore") + _TRUNCATION_INDICATOR


def validated_error_cause_json(data: JsonInput) -> bytes:
    """Return the normalised JSON of a valid cause, cropped to the size limit."""
    cause = ErrorCause.from_json(data)
    if not cause.is_valid():
        raise ErrorCauseError(f"error cause body has invalid format: {_as_text(data)}")
    encoded = cause.to_json()
    if len(encoded) > MAX_ERROR_CAUSE_SIZE_BYTES:
        return cause.cropped_json()
    return encoded