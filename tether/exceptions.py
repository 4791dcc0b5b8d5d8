"""Typed exception hierarchy. Every error tether can raise."""


class TetherError(Exception):
    """Base exception for all tether errors."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(TetherError):
    """Missing or unsupported configuration (unknown config id, bad schema, missing loop selector)."""
    pass


class TransportError(TetherError):
    """The transport call failed or returned no data."""
    def __init__(self, message: str, status_code: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ResponseValidationError(TetherError):
    """A healed call returned data that does not satisfy the instruction or schema."""
    def __init__(self, message: str, short_reason: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.short_reason = short_reason


class ExtractionError(TetherError):
    """Loop selector produced no items. Not fatal: the loop runs zero iterations."""
    def __init__(self, message: str, selector: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.selector = selector


class RetryExhaustedError(TetherError):
    """The self-healing loop ran out of attempts without a validated response."""
    def __init__(self, message: str, retries: int = 0, last_error: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.retries = retries
        self.last_error = last_error


class TransformError(TetherError):
    """A JMESPath expression could not be compiled or evaluated."""
    def __init__(self, message: str, expression: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.expression = expression


class SynthesisError(TetherError):
    """The config synthesizer could not produce a usable candidate."""
    pass


class StoreError(TetherError):
    """Keyed store read or write failed."""
    pass
