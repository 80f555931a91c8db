from __future__ import annotations


class LiquidityPathsError(Exception):
    """Base class for errors raised by the pool math and encoding engine."""


class ValidationError(LiquidityPathsError, ValueError):
    """Caller-supplied input is malformed (address, percentage, amount)."""


class UnsupportedVersionError(ValidationError):
    """Protocol version outside the supported generations."""


class UnsupportedFeeTierError(UnsupportedVersionError):
    pass


class MissingParameterError(ValidationError):
    def __init__(self, parameter: str, operation: str | None = None):
        self.parameter = parameter
        self.operation = operation
        where = f" for {operation}" if operation else ""
        super().__init__(f"Missing required parameter '{parameter}'{where}")
