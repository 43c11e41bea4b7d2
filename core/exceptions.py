# PATH: core/exceptions.py
"""
Typed exceptions for XARB.

Infrastructure failures are exceptions; validation rejections and failed
swaps are not (they are reported as booleans and SwapResult values).
"""

from typing import Optional

from core.constants import ErrorCode


class ArbError(Exception):
    """Base exception for XARB."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InfraError(ArbError):
    """Infrastructure-related errors (RPC, HTTP, timeouts)."""
    pass


class RPCError(InfraError):
    """JSON-RPC call failed on every endpoint."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_RPC_ERROR, details)


class AdapterResponseError(ArbError):
    """A venue response did not match the expected shape."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.ADAPTER_BAD_RESPONSE, details)


class ConfigError(ArbError):
    """Missing or malformed configuration. Fatal at startup."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_MISSING,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)
