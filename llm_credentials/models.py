"""
Data models for credential sources and the short-lived credentials minted from them.
"""

import hashlib
import os
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialSource(BaseModel):
    """Immutable identity of a long-lived credential origin."""

    model_config = ConfigDict(frozen=True)

    @property
    def cache_key(self) -> str:
        raise NotImplementedError


class ServiceAccountFile(CredentialSource):
    """A Google service account JSON document on disk."""

    path: str = Field(..., description="Path to the service account JSON file.")

    @property
    def cache_key(self) -> str:
        return self.path

    @classmethod
    def from_env(cls) -> Optional["ServiceAccountFile"]:
        """
        Build a source from GOOGLE_APPLICATION_CREDENTIALS.

        Returns:
            ServiceAccountFile if the variable is set, None otherwise
        """
        path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        if path:
            return cls(path=path)
        return None


class ServiceAccountKey(BaseModel):
    """The fields of a service account document needed to sign an assertion."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    client_email: str
    private_key: str


class AssumedRole(CredentialSource):
    """
    Base AWS keys plus a role to assume through STS.

    Required fields are optional at the type level so that a single
    validation pass can report every missing one.
    """

    role_arn: Optional[str] = None
    role_session_name: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    region: str = "us-east-1"
    external_id: Optional[str] = None
    duration_seconds: Optional[int] = None

    @property
    def cache_key(self) -> str:
        return f"{self.role_arn}:{self.role_session_name}:{self.access_key_id}"

    @classmethod
    def from_env(cls, **options: Any) -> "AssumedRole":
        """
        Build a source, filling base keys and region from AWS_* environment variables.

        Args:
            **options: Explicit field values; these take precedence over the environment

        Returns:
            AssumedRole with environment defaults applied
        """
        env_defaults = {
            "access_key_id": os.environ.get("AWS_ACCESS_KEY_ID"),
            "secret_access_key": os.environ.get("AWS_SECRET_ACCESS_KEY"),
            "session_token": os.environ.get("AWS_SESSION_TOKEN"),
            "region": os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
        }
        for name, value in env_defaults.items():
            if options.get(name) is None and value:
                options[name] = value
        options = {k: v for k, v in options.items() if v is not None}
        return cls(**options)


class StaticKey(CredentialSource):
    """A static API key passed through unchanged."""

    value: str = Field(..., repr=False)

    @property
    def cache_key(self) -> str:
        return "static:" + hashlib.sha256(self.value.encode("utf-8")).hexdigest()


class AWSSessionCredentials(BaseModel):
    """Temporary credentials returned by an STS role assumption."""

    model_config = ConfigDict(frozen=True)

    access_key_id: str
    secret_access_key: str = Field(..., repr=False)
    session_token: str = Field(..., repr=False)
    expiration: datetime


class MintedCredential(BaseModel):
    """A freshly minted credential and the issuer's absolute expiry (UNIX seconds)."""

    model_config = ConfigDict(frozen=True)

    secret_payload: Any = Field(..., repr=False)
    issuer_expires_at: Optional[float] = None


class CachedCredential(BaseModel):
    """A minted credential as stored in the cache, with its margined deadline."""

    model_config = ConfigDict(frozen=True)

    secret_payload: Any = Field(..., repr=False)
    expires_at: Optional[float] = None
    minted_at: float

    def is_valid(self, now: float) -> bool:
        """Return True while the credential may still be handed out."""
        return self.expires_at is None or self.expires_at > now

    def ttl(self, now: float) -> Optional[float]:
        """Seconds left before the credential stops being served, None if it never expires."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - now)
