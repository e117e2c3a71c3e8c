"""Request parsing and response bodies for the runtime and extensions API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Optional, Union

from lambdarie.error_cause import ErrorCauseError, validated_error_cause_json
from lambdarie.model import ErrorResponse

_log = logging.getLogger(__name__)

LAMBDA_AGENT_IDENTIFIER = "Lambda-Extension-Identifier"
LAMBDA_AGENT_FUNCTION_ERROR_TYPE = "Lambda-Extension-Function-Error-Type"
LAMBDA_AGENT_NAME = "Lambda-Extension-Name"

ERR_AGENT_IDENTIFIER_MISSING = "Extension.MissingExtensionIdentifier"
ERR_AGENT_IDENTIFIER_INVALID = "Extension.InvalidExtensionIdentifier"
ERR_AGENT_NAME_INVALID = "Extension.InvalidExtensionName"
ERR_AGENT_REGISTRATION_CLOSED = "Extension.RegistrationClosed"
ERR_AGENT_IDENTIFIER_UNKNOWN = "Extension.UnknownExtensionIdentifier"
ERR_AGENT_INVALID_STATE = "Extension.InvalidExtensionState"
ERR_AGENT_MISSING_HEADER = "Extension.MissingHeader"
ERR_TOO_MANY_EXTENSIONS = "Extension.TooManyExtensions"
ERR_INVALID_EVENT_TYPE = "Extension.InvalidEventType"
ERR_LOGS_SUBSCRIPTION_CLOSED = "Logs.SubscriptionClosed"
ERR_INVALID_REQUEST_FORMAT = "InvalidRequestFormat"

STATE_TRANSITION_FAILED_FOR_EXTENSION_MESSAGE_FORMAT = (
    "State transition from %s to %s failed for extension %s. Error: %s"
)
STATE_TRANSITION_FAILED_FOR_RUNTIME_MESSAGE_FORMAT = (
    "State transition from %s to %s failed for runtime. Error: %s"
)

ERROR_WITH_CAUSE_CONTENT_TYPE = "application/vnd.aws.lambda.error.cause+json"
XRAY_ERROR_CAUSE_HEADER_NAME = "Lambda-Runtime-Function-XRay-Error-Cause"
INVALID_ERROR_BODY_MESSAGE = "Invalid error body"
TELEMETRY_API_DISABLED_ERROR_TYPE = "Logs.NotSupported"

_JSON_CONTENT_TYPE = "application/json"
_BINARY_CONTENT_TYPE = "application/octet-stream"

Body = Union[str, bytes, bytearray, memoryview]


class RequestFormatError(ValueError):
    """Raised when a request body is malformed or uses deprecated fields."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON literal {name}")


def _loads(body: Body) -> Any:
    text = body if isinstance(body, str) else bytes(body).decode("utf-8", "replace")
    return json.loads(text, parse_constant=_reject_constant)


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


def _fields(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RequestFormatError(f"cannot unmarshal {_kind(value)} into {name} of type object")
    # Field names match case-insensitively; a later key overrides an earlier one.
    return {key.lower(): item for key, item in value.items()}


def _string(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RequestFormatError(f"cannot unmarshal {_kind(value)} into field {name} of type string")
    return value


def _string_list(value: Any, name: str) -> Optional[list[str]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise RequestFormatError(f"cannot unmarshal {_kind(value)} into field {name} of type array")
    return [_string(item, name) for item in value]


@dataclass
class ErrorWithCauseRequest:
    """Body of an invocation error sent with the error-cause content type."""

    error_message: str = ""
    error_type: str = ""
    stack_trace: Optional[list[str]] = None
    error_cause: Optional[bytes] = None

    @classmethod
    def from_json(cls, body: Body) -> "ErrorWithCauseRequest":
        """Parse a request body, raising RequestFormatError when malformed."""
        prefix = "error unmarshalling request body with error cause"
        try:
            value = _loads(body)
        except ValueError as exc:
            raise RequestFormatError(f"{prefix}: {exc}") from exc
        try:
            fields = _fields(value, "request body")
            cause: Optional[bytes] = None
            if "errorcause" in fields:
                cause = json.dumps(
                    fields["errorcause"], ensure_ascii=False, separators=(",", ":")
                ).encode("utf-8", "replace")
            return cls(
                error_message=_string(fields.get("errormessage"), "errorMessage"),
                error_type=_string(fields.get("errortype"), "errorType"),
                stack_trace=_string_list(fields.get("stacktrace"), "stackTrace"),
                error_cause=cause,
            )
        except RequestFormatError as exc:
            raise RequestFormatError(f"{prefix}: {exc}") from None

    def invoke_error_response(self) -> bytes:
        """Return the error response body without the error cause."""
        return ErrorResponse(
            error_message=self.error_message,
            error_type=self.error_type,
            stack_trace=self.stack_trace,
        ).to_json()

    def validated_xray_cause(self) -> Optional[bytes]:
        """Return the validated error cause, or None if absent or invalid."""
        if not self.error_cause:
            return None
        try:
            return validated_error_cause_json(self.error_cause)
        except ErrorCauseError as exc:
            _log.error(
                "errorCause validation error, Content-Type: %s: %s",
                ERROR_WITH_CAUSE_CONTENT_TYPE,
                exc,
            )
            return None


@dataclass
class RegisterRequest:
    """Body of an extension registration request."""

    events: list[str] = field(default_factory=list)


def parse_register_request(body: Body) -> RegisterRequest:
    """Parse a registration body, rejecting the deprecated configurationKeys."""
    try:
        value = _loads(body)
    except ValueError as exc:
        raise RequestFormatError(str(exc)) from exc
    fields = _fields(value, "register request")
    events = _string_list(fields.get("events"), "events") or []
    configuration_keys = _string_list(fields.get("configurationkeys"), "configurationKeys")
    if configuration_keys:
        raise RequestFormatError(
            "configurationKeys are deprecated; use environment variables instead"
        )
    return RegisterRequest(events=events)


def determine_json_content_type(body: Body) -> str:
    """Return the JSON content type if ``body`` is valid JSON, else binary."""
    try:
        _loads(body)
    except ValueError:
        return _BINARY_CONTENT_TYPE
    return _JSON_CONTENT_TYPE


def runtime_logs_stub_response() -> tuple[int, dict[str, str], bytes]:
    """Return status, headers and body answered when the logs API is absent."""
    body = ErrorResponse(
        error_message="Logs API is not supported",
        error_type=TELEMETRY_API_DISABLED_ERROR_TYPE,
    ).to_json()
    headers = {"Content-Type": "application/json; charset=utf-8"}
    return int(HTTPStatus.ACCEPTED), headers, body + b"\n"