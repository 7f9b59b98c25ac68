"""
Stateless signing primitives.

RSA-SHA256 signatures for JWT assertions and the AWS Signature Version 4
derived-key chain used to sign STS and Bedrock requests. Nothing here
touches the network or keeps state.
"""

import base64
import hashlib
import hmac
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, quote, urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..errors import SigningFailed

ALGORITHM = "AWS4-HMAC-SHA256"
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

QueryType = Union[str, Mapping[str, str], Iterable[Tuple[str, str]], None]


def _to_bytes(data: Union[str, bytes]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def base64url_encode(data: Union[str, bytes]) -> str:
    """URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(_to_bytes(data)).rstrip(b"=").decode("ascii")


def sha256_hex(data: Union[str, bytes]) -> str:
    return hashlib.sha256(_to_bytes(data)).hexdigest()


def rsa_sha256_sign(message: Union[str, bytes], pem_private_key: str) -> str:
    """
    Sign a message with RSA-SHA256 (PKCS#1 v1.5).

    Args:
        message: Bytes (or text, UTF-8 encoded) to sign
        pem_private_key: PEM encoded, unencrypted RSA private key

    Returns:
        Base64url encoded signature without padding

    Raises:
        SigningFailed: If the key cannot be loaded, is not RSA, or signing fails
    """
    try:
        private_key = serialization.load_pem_private_key(
            _to_bytes(pem_private_key), password=None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningFailed(f"Could not load private key: {e}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise SigningFailed(
            f"Expected an RSA private key, got {type(private_key).__name__}"
        )

    try:
        signature = private_key.sign(
            _to_bytes(message), padding.PKCS1v15(), hashes.SHA256()
        )
    except (ValueError, TypeError) as e:
        raise SigningFailed(f"RSA signing failed: {e}") from e

    return base64url_encode(signature)


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """
    Derive the SigV4 signing key.

    Args:
        secret_key: AWS secret access key
        date_stamp: Date in YYYYMMDD form
        region: AWS region, e.g. us-east-1
        service: Service name, e.g. sts or bedrock

    Returns:
        32 byte signing key
    """
    k_date = _hmac(("AWS4" + secret_key).encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def _uri_encode(value: str) -> str:
    return quote(value, safe="-_.~")


def canonical_query_string(query: QueryType) -> str:
    if not query:
        return ""
    if isinstance(query, str):
        pairs = parse_qsl(query, keep_blank_values=True)
    elif isinstance(query, Mapping):
        pairs = list(query.items())
    else:
        pairs = list(query)
    encoded = sorted((_uri_encode(str(k)), _uri_encode(str(v))) for k, v in pairs)
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_headers(headers: Mapping[str, str]) -> Tuple[str, str]:
    """
    Build the canonical header block and the signed header list.

    Returns:
        Tuple of (canonical headers, semicolon separated signed header names)
    """
    normalized: Dict[str, str] = {}
    for name, value in headers.items():
        normalized[name.strip().lower()] = " ".join(str(value).strip().split())
    names = sorted(normalized)
    block = "".join(f"{name}:{normalized[name]}\n" for name in names)
    return block, ";".join(names)


def canonical_request(
    method: str,
    canonical_uri: str,
    query: QueryType,
    headers: Mapping[str, str],
    payload_hash: str,
) -> Tuple[str, str]:
    """Return the canonical request and its signed header list."""
    header_block, signed_headers = canonical_headers(headers)
    request = "\n".join(
        [
            method.upper(),
            canonical_uri or "/",
            canonical_query_string(query),
            header_block,
            signed_headers,
            payload_hash,
        ]
    )
    return request, signed_headers


def sign_request(
    method: str,
    canonical_uri: str,
    query: QueryType,
    headers: Mapping[str, str],
    payload_hash: str,
    amz_date: str,
    region: str,
    service: str,
    access_key_id: str,
    secret_key: str,
) -> str:
    """
    Compute a SigV4 Authorization header value.

    Every header passed in is signed, so it must also be sent unchanged.

    Args:
        method: HTTP method
        canonical_uri: URI-encoded absolute path
        query: Query string or key/value pairs
        headers: Headers to sign, including host and x-amz-date
        payload_hash: Hex SHA-256 of the request body
        amz_date: Request timestamp in YYYYMMDDTHHMMSSZ form
        region: AWS region
        service: AWS service name
        access_key_id: Access key the signature is attributed to
        secret_key: Secret access key the signing key is derived from

    Returns:
        Value for the Authorization header
    """
    request, signed_headers = canonical_request(
        method, canonical_uri, query, headers, payload_hash
    )
    date_stamp = amz_date[:8]
    scope = f"{date_stamp}/{region}/{service}/aws4_request"
    string_to_sign = "\n".join([ALGORITHM, amz_date, scope, sha256_hex(request)])
    signing_key = derive_signing_key(secret_key, date_stamp, region, service)
    signature = hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return (
        f"{ALGORITHM} Credential={access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def sign_aws_request(
    method: str,
    url: str,
    body: Union[str, bytes],
    access_key_id: str,
    secret_access_key: str,
    region: str,
    service: str,
    session_token: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    Sign an outbound AWS request and return the headers to send with it.

    Args:
        method: HTTP method
        url: Full request URL
        body: Request body
        access_key_id: Access key id (base or temporary)
        secret_access_key: Matching secret access key
        region: AWS region
        service: AWS service name (sts, bedrock, ...)
        session_token: Session token for temporary credentials
        headers: Extra headers to sign and send, e.g. content-type
        now: Signing time, defaults to the current UTC time

    Returns:
        Headers including host, x-amz-date, the optional security token and Authorization
    """
    now = now or datetime.now(timezone.utc)
    amz_date = now.strftime(AMZ_DATE_FORMAT)
    parts = urlsplit(url)

    signed: Dict[str, str] = dict(headers or {})
    signed["host"] = parts.netloc
    signed["x-amz-date"] = amz_date
    if session_token:
        signed["x-amz-security-token"] = session_token

    authorization = sign_request(
        method=method,
        canonical_uri=quote(parts.path or "/", safe="/-_.~"),
        query=parts.query,
        headers=signed,
        payload_hash=sha256_hex(body),
        amz_date=amz_date,
        region=region,
        service=service,
        access_key_id=access_key_id,
        secret_key=secret_access_key,
    )
    signed["Authorization"] = authorization
    return signed
