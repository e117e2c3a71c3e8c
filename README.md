# lambdarie

This package holds parts of a local emulator for a function runtime interface.
An emulator of this kind runs function code and its extensions outside the
hosted service, so you can check how they behave. The package uses only the
standard library.

## What is inside

### `lambdarie.logging`

- `InternalFormatter` is a `logging.Formatter`. It formats the emulator's own
  records in sandbox style, for example
  `02 Jan 2006 15:04:05,000 [INFO] (rapid) message`.
  - To add key/value pairs, pass `extra={"fields": {...}}`.
  - An exception passed through `exc_info` appears as an `error=` field.
- `set_output(stream)` attaches a stream handler to the root logger and
  returns that handler.
  - If you call it again, the same handler is pointed at the new stream.
  - It lowers the root level to INFO when the level is stricter than that.
- `PlatformLogger(output, tail_log_writer)` writes every platform line to both
  writers.
  - `log_extension_init_event(...)` writes the line that describes an
    extension's init state.
  - `printf(fmt, *args)` writes a %-formatted line.
- `TailLogWriter(out)` passes writes on to `out` only after `enable()` has
  been called. It starts out disabled. While it is disabled it still reports
  the data as written.
- `supernova_invalid_task_config_repr` and `supernova_launch_error_repr`
  return functions that render image-level error lines.

### `lambdarie.metering`

- `monotime()` returns the monotonic clock in nanoseconds.
- `mono_to_epoch(t)` converts one of those readings to epoch nanoseconds.
- `ExtensionsResetDurationProfiler` measures how long extensions took to
  reset.
  - Call `start()` and then `stop()`.
  - `calculate_extensions_reset_ms()` returns `(milliseconds, timed_out)`.
    When the duration is longer than `available_ns`, the result is capped at
    `available_ns`.
  - The result is `(0, False)` in three cases: no agents are registered for
    shutdown, `available_ns` is negative, or the duration is negative.

### `lambdarie.model`

This module holds dataclasses for the API bodies. Each has a `to_dict()`
method that returns the wire field names:

- `AgentEvent`
- `AgentInvokeEvent`
- `AgentShutdownEvent`
- `ExtensionRegisterResponse`
- `CognitoIdentity`
- `StatusResponse`
- `Tracing`
- `ErrorResponse`, which also has `to_json()`.

`new_xray_tracing(value)` returns a `Tracing` of type `X-Amzn-Trace-Id`. It
returns `None` when the value is empty.

### `lambdarie.error_cause`

This module parses, validates and compacts X-Ray error causes.

- `ErrorCause.from_json` parses a cause. It raises `ErrorCauseError` if the
  input is malformed.
- `ErrorCause.is_valid` checks the cause. A cause needs at least one of these
  to be non-empty: working directory, paths, exceptions or message.
- `validated_error_cause_json(data)` returns the normalised JSON of a valid
  cause. If the JSON is larger than `MAX_ERROR_CAUSE_SIZE_BYTES` (64 KiB), it
  is cropped to fit.
- `ErrorCauseCompactor` and `crop_string` do the cropping.

### `lambdarie.handler`

This module holds the request-body logic of the API handlers. It also defines
header names and error-type constants.

- `parse_register_request(body)` returns a `RegisterRequest`. It raises
  `RequestFormatError` if the body is malformed or uses the deprecated
  `configurationKeys`.
- `ErrorWithCauseRequest` handles bodies sent as
  `application/vnd.aws.lambda.error.cause+json`:
  - `from_json` parses the body.
  - `invoke_error_response` returns the error response without the cause.
  - `validated_xray_cause` returns the validated cause, or `None`.
- `determine_json_content_type(body)` returns `application/json` for valid
  JSON and `application/octet-stream` for anything else.
- `runtime_logs_stub_response()` returns `(202, headers, body)`. This is the
  reply used when the logs API is not available.

## Examples

Validate an error cause:

```python
from lambdarie.error_cause import validated_error_cause_json, ErrorCauseError

validated_error_cause_json(b'{"working_directory": "/var/task"}')
# b'{"exceptions":null,"working_directory":"/var/task","paths":null}'

try:
    validated_error_cause_json(b"{}")
except ErrorCauseError as exc:
    print(exc)  # error cause body has invalid format: {}
```

Write platform log lines, both to the main output and to an enabled tail log:

```python
import io
from lambdarie.logging import PlatformLogger, TailLogWriter

out, tail_buffer = io.StringIO(), io.StringIO()
tail = TailLogWriter(tail_buffer)
tail.enable()
logger = PlatformLogger(out, tail)
logger.log_extension_init_event("agent", "Registered", "", ["INVOKE", "SHUTDOWN"])
# both buffers: "EXTENSION\tName: agent\tState: Registered\tEvents: [INVOKE,SHUTDOWN]\n"
```

Parse the body of a registration request:

```python
from lambdarie.handler import parse_register_request

parse_register_request(b'{"events": ["INVOKE"]}').events  # ["INVOKE"]
```

## What this package does not do

These are building blocks only. The package does not include:

- an HTTP server or routing;
- agent registration or state tracking;
- invoke handling;
- a command-line program.

The handler functions work on request bodies that you pass in. They return
data and raise exceptions. Serving HTTP is left to the caller.

## Running the tests

```
pip install -e ".[test]"
pytest
```