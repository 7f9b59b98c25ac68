"""
LLM Credentials

Mints, signs and caches short-lived credentials for cloud LLM providers.
"""

from .auth import CredentialCache
from .errors import (
    CredentialError,
    ExchangeFailed,
    MalformedSource,
    MissingRequiredOptions,
    ParseFailed,
    SigningFailed,
    UnsupportedSource,
)
from .models import AssumedRole, CachedCredential, ServiceAccountFile, StaticKey

__all__ = [
    "CredentialCache",
    "CredentialError",
    "ExchangeFailed",
    "MalformedSource",
    "MissingRequiredOptions",
    "ParseFailed",
    "SigningFailed",
    "UnsupportedSource",
    "AssumedRole",
    "CachedCredential",
    "ServiceAccountFile",
    "StaticKey",
]

__version__ = "0.1.0"
