"""Bodies exchanged over the runtime and extensions API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

XRAY_TRACING_TYPE = "X-Amzn-Trace-Id"

_HTML_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def _marshal(value: Any) -> bytes:
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return text.translate(_HTML_ESCAPES).encode("utf-8", "replace")


@dataclass
class Tracing:
    """Tracing object sent with an agent invoke event."""

    type: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value}


def new_xray_tracing(value: str) -> Optional[Tracing]:
    """Return an X-Ray tracing object, or None for an empty value."""
    if not value:
        return None
    return Tracing(XRAY_TRACING_TYPE, value)


@dataclass
class AgentEvent:
    """One of the INVOKE or SHUTDOWN events delivered to agents."""

    event_type: str
    deadline_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {"eventType": self.event_type, "deadlineMs": self.deadline_ms}


@dataclass
class AgentInvokeEvent(AgentEvent):
    """Invoke event returned to an agent's next-event request."""

    request_id: str
    invoked_function_arn: str
    tracing: Optional[Tracing] = None

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["requestId"] = self.request_id
        body["invokedFunctionArn"] = self.invoked_function_arn
        if self.tracing is not None:
            body["tracing"] = self.tracing.to_dict()
        return body


@dataclass
class AgentShutdownEvent(AgentEvent):
    """Shutdown event returned to an agent's next-event request."""

    shutdown_reason: str

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["shutdownReason"] = self.shutdown_reason
        return body


@dataclass
class ExtensionRegisterResponse:
    """Response to an extension registration."""

    function_name: str
    function_version: str
    handler: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "functionName": self.function_name,
            "functionVersion": self.function_version,
            "handler": self.handler,
        }


@dataclass
class CognitoIdentity:
    """Client's Cognito identity, sent in a response header."""

    cognito_identity_id: str
    cognito_identity_pool_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "cognitoIdentityId": self.cognito_identity_id,
            "cognitoIdentityPoolId": self.cognito_identity_pool_id,
        }


@dataclass
class StatusResponse:
    """Status information returned by the API server."""

    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status}


@dataclass
class ErrorResponse:
    """Standard invoke error response."""

    error_message: str
    error_type: str
    stack_trace: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "errorMessage": self.error_message,
            "errorType": self.error_type,
        }
        if self.stack_trace:
            body["stackTrace"] = list(self.stack_trace)
        return body

    def to_json(self) -> bytes:
        """Return the compact JSON encoding of the response."""
        return _marshal(self.to_dict())