"""Exceptions raised by the gateway core."""


class GatewayError(Exception):
    """Base class for gateway errors."""


class ConfigurationError(GatewayError):
    """Raised when no usable credentials are configured."""


class ResponseParseError(GatewayError):
    """Raised when a successful response does not contain parseable JSON."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text
