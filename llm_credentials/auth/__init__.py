"""
Credential providers for LLM APIs that need short-lived credentials.
Supports multiple schemes: service account JWT exchange, STS role assumption, and static keys.
"""

from .credential_provider import CredentialProvider
from .static_key_provider import StaticKeyProvider
from .service_account_provider import ServiceAccountProvider
from .assume_role_provider import AssumeRoleProvider, assume_role
from .credential_cache import CredentialCache
from .signing import rsa_sha256_sign, sign_aws_request, sign_request

__all__ = [
    "CredentialProvider",
    "StaticKeyProvider",
    "ServiceAccountProvider",
    "AssumeRoleProvider",
    "assume_role",
    "CredentialCache",
    "rsa_sha256_sign",
    "sign_aws_request",
    "sign_request",
]
