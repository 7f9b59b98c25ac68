"""
Service Account-based provider that exchanges a signed JWT assertion for a
short-lived OAuth2 access token (Google Vertex AI).
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

import requests
from pydantic import ValidationError

from ..errors import ExchangeFailed, MalformedSource, ParseFailed
from ..models import MintedCredential, ServiceAccountFile, ServiceAccountKey
from .credential_provider import CredentialProvider
from .signing import base64url_encode, rsa_sha256_sign

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600


def _compact_json(value: dict) -> str:
    return json.dumps(value, separators=(",", ":"))


class ServiceAccountProvider(CredentialProvider):
    """Mints OAuth2 access tokens through the JWT-bearer grant."""

    source_type = ServiceAccountFile

    def __init__(
        self,
        token_uri: Optional[str] = None,
        scope: str = CLOUD_PLATFORM_SCOPE,
        timeout: float = 10,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize service account provider.

        Args:
            token_uri: OAuth2 token endpoint, also used as the assertion audience
            scope: OAuth2 scope requested for the token
            timeout: HTTP timeout in seconds for the token exchange
            clock: Source of the current UNIX time
        """
        self.token_uri = (
            token_uri or os.environ.get("LLM_CREDENTIALS_TOKEN_URI") or GOOGLE_TOKEN_URI
        )
        self.scope = scope
        self.timeout = timeout
        self.clock = clock

    def load_service_account(self, path: str) -> ServiceAccountKey:
        """
        Load service account credentials from file.

        Args:
            path: Path to the service account JSON file

        Returns:
            The parsed client email and private key

        Raises:
            MalformedSource: If the file is missing, unreadable or malformed
        """
        file_path = Path(path)
        if not file_path.exists():
            raise MalformedSource(f"Service account file not found: {path}", path=path)

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedSource(
                f"Failed to parse service account JSON: {e}", path=path
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedSource(
                f"Failed to read service account file: {e}", path=path
            ) from e

        if not isinstance(data, dict):
            raise MalformedSource("Service account JSON must be an object", path=path)

        missing = [name for name in ("client_email", "private_key") if not data.get(name)]
        if missing:
            raise MalformedSource(
                f"Service account file missing fields: {', '.join(missing)}",
                path=path,
                details={"missing": missing},
            )

        try:
            key = ServiceAccountKey.model_validate(data)
        except ValidationError as e:
            raise MalformedSource(f"Invalid service account fields: {e}", path=path) from e

        if "-----BEGIN" not in key.private_key:
            raise MalformedSource("private_key is not PEM encoded", path=path)

        return key

    def build_assertion(self, key: ServiceAccountKey, now: int) -> str:
        """
        Build a signed RS256 JWT assertion.

        Args:
            key: Service account email and private key
            now: Issued-at time in UNIX seconds

        Returns:
            The assertion as header.claims.signature
        """
        header = {"alg": "RS256", "typ": "JWT"}
        claims = {
            "iss": key.client_email,
            "scope": self.scope,
            "aud": self.token_uri,
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
        }
        message = (
            f"{base64url_encode(_compact_json(header))}."
            f"{base64url_encode(_compact_json(claims))}"
        )
        signature = rsa_sha256_sign(message, key.private_key)
        return f"{message}.{signature}"

    def exchange_assertion(self, assertion: str) -> str:
        """
        Exchange a JWT assertion for an access token.

        Args:
            assertion: Signed JWT assertion

        Returns:
            The access token

        Raises:
            ExchangeFailed: On transport errors or a non-200 response
            ParseFailed: If a 200 response lacks a usable access_token
        """
        try:
            response = requests.post(
                self.token_uri,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExchangeFailed(f"Token exchange request failed: {e}") from e

        if response.status_code != 200:
            raise ExchangeFailed(
                f"Token exchange failed with status {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        try:
            token_data = response.json()
        except ValueError as e:
            raise ParseFailed("Token endpoint returned a non-JSON body") from e

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise ParseFailed("Token endpoint response has no access_token")
        return access_token

    def mint(self, source: ServiceAccountFile) -> MintedCredential:
        """
        Get an OAuth2 access token for a service account.

        Args:
            source: The service account file

        Returns:
            MintedCredential holding the access token, expiring TOKEN_LIFETIME_SECONDS after issue
        """
        logger.debug(f"Getting access token for service account: {source.path}")
        key = self.load_service_account(source.path)
        now = int(self.clock())
        assertion = self.build_assertion(key, now)
        try:
            access_token = self.exchange_assertion(assertion)
        except (ExchangeFailed, ParseFailed) as e:
            logger.error(f"Failed to get access token for {key.client_email}: {e}")
            raise
        logger.info(f"Obtained access token for {key.client_email}")
        return MintedCredential(
            secret_payload=access_token,
            issuer_expires_at=float(now + TOKEN_LIFETIME_SECONDS),
        )
