"""
Error types raised by Oracle Gas Tools.
"""

from typing import Any, Optional


class OracleToolsError(Exception):
    """Base class for all errors raised by this package"""


class ConfigurationError(OracleToolsError):
    """A required configuration value is missing"""


class ValidationError(OracleToolsError, ValueError):
    """Caller supplied parameters are malformed"""


class TransportError(OracleToolsError):
    """HTTP or JSON-RPC request failed"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class MalformedResponseError(OracleToolsError):
    """Response body does not have the expected shape"""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class HeadNotFoundError(OracleToolsError):
    """Fork has no head id after a state-mutating operation"""


class SignatureError(OracleToolsError):
    """Signed oracle message was not signed by the expected reporter"""


class SymbolNotFoundError(OracleToolsError, LookupError):
    """Requested ticker is not in the oracle cache"""


def describe_validation_errors(error) -> str:
    """Flatten a pydantic ValidationError into `loc: msg` pairs"""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )
