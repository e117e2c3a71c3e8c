"""Logging, metering, API body models, error-cause validation and request-body parsing for a local function runtime emulator."""

__version__ = "0.1.0"
__all__ = ["logging", "metering", "model", "error_cause", "handler"]