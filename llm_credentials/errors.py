"""
Structured errors raised while minting, signing and caching credentials.
"""

from typing import Any, Dict, List, Optional


class CredentialError(Exception):
    """Base exception for credential minting failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary suitable for JSON output."""
        return {"code": self.code, "message": self.message, "details": self.details}


class MalformedSource(CredentialError):
    """The credential source document is missing, unreadable or malformed."""

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.path = path
        details = dict(details or {})
        if path is not None:
            details.setdefault("path", path)
        super().__init__("MALFORMED_SOURCE", message, details)


class MissingRequiredOptions(CredentialError):
    """One or more required options were not supplied."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            "MISSING_REQUIRED_OPTIONS",
            f"Missing required options: {', '.join(self.missing)}",
            {"missing": self.missing},
        )


class ExchangeFailed(CredentialError):
    """The token or role endpoint rejected the request or could not be reached."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        self.body = body
        details = dict(details or {})
        if status is not None:
            details.setdefault("status", status)
        if body is not None:
            details.setdefault("body", body)
        super().__init__("EXCHANGE_FAILED", message, details)


class SigningFailed(CredentialError):
    """A cryptographic signing operation failed."""

    def __init__(self, message: str = "Signing failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SIGNING_FAILED", message, details)


class ParseFailed(CredentialError):
    """An endpoint response did not have the expected shape."""

    def __init__(self, message: str = "Unexpected response", details: Optional[Dict[str, Any]] = None):
        super().__init__("PARSE_FAILED", message, details)


class UnsupportedSource(CredentialError):
    """No configured provider can mint credentials for the given source."""

    def __init__(self, source_type: str):
        self.source_type = source_type
        super().__init__(
            "UNSUPPORTED_SOURCE",
            f"No credential provider registered for {source_type}",
            {"source_type": source_type},
        )
