# sparkscope/core/errors.py
from __future__ import annotations


class SparkScopeError(Exception):
    """
    Base class for all expected operational errors in SparkScope.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, host APIs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no channel opened yet)
# ---------------------------------------------------------------------------

class ConfigError(SparkScopeError):
    """
    Configuration is invalid or inconsistent.

    Examples:
      - missing or unparsable YAML file
      - unknown channel driver key
      - channel params not accepted by the driver constructor
      - unknown display mode / log level
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Channel lifecycle errors
# ---------------------------------------------------------------------------

class ChannelConnectError(SparkScopeError):
    """
    Channel to the kernel-side listener could not be opened.

    Examples:
      - socket refused
      - serial port not found / in use
    """
    code = "channel_connect_error"


# ---------------------------------------------------------------------------
# Event decoding errors
# ---------------------------------------------------------------------------

class EnvelopeError(SparkScopeError):
    """
    Inbound message could not be decoded into a lifecycle event.

    Examples:
      - missing outer or inner msgtype
      - inner msg is not valid JSON
      - required payload field (jobId, stageId, ...) missing or not an int
    """
    code = "envelope_error"
