"""
Role-assumption provider: exchanges base AWS keys plus a role ARN for
temporary credentials through a SigV4-signed STS AssumeRole call.
"""

import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode
from xml.etree import ElementTree

import requests

from ..errors import ExchangeFailed, MissingRequiredOptions, ParseFailed
from ..models import AssumedRole, AWSSessionCredentials, MintedCredential
from .credential_provider import CredentialProvider
from .signing import sign_aws_request

logger = logging.getLogger(__name__)

STS_API_VERSION = "2011-06-15"
STS_NAMESPACE = {"sts": "https://sts.amazonaws.com/doc/2011-06-15/"}
REQUIRED_OPTIONS = ("role_arn", "role_session_name", "access_key_id", "secret_access_key")
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=utf-8"


def missing_options(source: AssumedRole) -> List[str]:
    """Return every required option that is absent or empty, in declaration order."""
    return [name for name in REQUIRED_OPTIONS if not getattr(source, name)]


def _find(element: ElementTree.Element, path: str) -> Optional[ElementTree.Element]:
    # STS documents are namespaced, but accept bare ones too
    found = element.find("/".join(f"sts:{part}" for part in path.split("/")), STS_NAMESPACE)
    if found is None:
        found = element.find(path)
    return found


def parse_expiration(value: str) -> datetime:
    """Parse an ISO-8601 STS timestamp into an aware UTC datetime."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_assume_role_response(body: str) -> AWSSessionCredentials:
    """
    Parse an AssumeRoleResponse document.

    Args:
        body: XML response body

    Returns:
        The temporary credentials

    Raises:
        ParseFailed: If the XML is invalid or lacks a credential field
    """
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError as e:
        raise ParseFailed(f"Invalid AssumeRole XML: {e}") from e

    credentials = _find(root, "AssumeRoleResult/Credentials")
    if credentials is None:
        raise ParseFailed("AssumeRoleResult/Credentials not found in STS response")

    values: Dict[str, str] = {}
    for tag in ("AccessKeyId", "SecretAccessKey", "SessionToken", "Expiration"):
        element = _find(credentials, tag)
        if element is None or not (element.text or "").strip():
            raise ParseFailed(f"{tag} not found in STS response")
        values[tag] = element.text.strip()

    try:
        expiration = parse_expiration(values["Expiration"])
    except ValueError as e:
        raise ParseFailed(f"Invalid Expiration timestamp: {values['Expiration']}") from e

    return AWSSessionCredentials(
        access_key_id=values["AccessKeyId"],
        secret_access_key=values["SecretAccessKey"],
        session_token=values["SessionToken"],
        expiration=expiration,
    )


def _error_details(body: str) -> Dict[str, str]:
    """Pull Code and Message out of an STS ErrorResponse, if the body is one."""
    try:
        root = ElementTree.fromstring(body)
    except ElementTree.ParseError:
        return {}
    details = {}
    for tag in ("Code", "Message"):
        element = _find(root, f"Error/{tag}")
        if element is not None and element.text:
            details[tag.lower()] = element.text.strip()
    return details


class AssumeRoleProvider(CredentialProvider):
    """Mints temporary AWS credentials through STS AssumeRole."""

    source_type = AssumedRole

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: float = 10,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize role-assumption provider.

        Args:
            endpoint: STS endpoint URL; defaults to the regional endpoint of each source
            timeout: HTTP timeout in seconds for the STS call
            clock: Source of the current UNIX time, used as the signing time
        """
        self.endpoint = endpoint or os.environ.get("LLM_CREDENTIALS_STS_ENDPOINT")
        self.timeout = timeout
        self.clock = clock

    def endpoint_for(self, source: AssumedRole) -> str:
        if self.endpoint:
            return self.endpoint
        return f"https://sts.{source.region}.amazonaws.com/"

    def build_request(self, source: AssumedRole) -> Dict[str, Any]:
        """
        Build the signed AssumeRole request.

        Args:
            source: A validated role-assumption source

        Returns:
            Dict with url, body and headers ready to POST
        """
        params = [
            ("Action", "AssumeRole"),
            ("Version", STS_API_VERSION),
            ("RoleArn", source.role_arn),
            ("RoleSessionName", source.role_session_name),
        ]
        if source.duration_seconds is not None:
            params.append(("DurationSeconds", str(source.duration_seconds)))
        if source.external_id:
            params.append(("ExternalId", source.external_id))
        body = urlencode(params)

        url = self.endpoint_for(source)
        headers = sign_aws_request(
            method="POST",
            url=url,
            body=body,
            access_key_id=source.access_key_id,
            secret_access_key=source.secret_access_key,
            region=source.region,
            service="sts",
            session_token=source.session_token,
            headers={"content-type": FORM_CONTENT_TYPE},
            now=datetime.fromtimestamp(self.clock(), timezone.utc),
        )
        return {"url": url, "body": body, "headers": headers}

    def mint(self, source: AssumedRole) -> MintedCredential:
        """
        Assume a role and return its temporary credentials.

        Args:
            source: Role ARN, session name and base keys

        Returns:
            MintedCredential holding AWSSessionCredentials, expiring at the STS Expiration

        Raises:
            MissingRequiredOptions: If any required option is absent
            ExchangeFailed: On transport errors or a non-200 response
            ParseFailed: If the response XML is not an AssumeRoleResponse
        """
        missing = missing_options(source)
        if missing:
            raise MissingRequiredOptions(missing)

        request = self.build_request(source)
        logger.debug(f"Assuming role {source.role_arn} as {source.role_session_name}")

        try:
            response = requests.post(
                request["url"],
                data=request["body"],
                headers=request["headers"],
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"AssumeRole request for {source.role_arn} failed: {e}")
            raise ExchangeFailed(f"AssumeRole request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"AssumeRole for {source.role_arn} failed with status {response.status_code}"
            )
            raise ExchangeFailed(
                f"AssumeRole failed with status {response.status_code}",
                status=response.status_code,
                body=response.text,
                details=_error_details(response.text),
            )

        credentials = parse_assume_role_response(response.text)
        logger.info(
            f"Assumed role {source.role_arn}, credentials expire at "
            f"{credentials.expiration.isoformat()}"
        )
        return MintedCredential(
            secret_payload=credentials,
            issuer_expires_at=credentials.expiration.timestamp(),
        )


def assume_role(**options: Any) -> AWSSessionCredentials:
    """
    Assume a role from keyword options without going through a cache.

    Args:
        **options: AssumedRole fields (role_arn, role_session_name, access_key_id, ...)

    Returns:
        The temporary credentials
    """
    minted = AssumeRoleProvider().mint(AssumedRole(**options))
    return minted.secret_payload
