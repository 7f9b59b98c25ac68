"""
Static API key passthrough.
This is the legacy method of providing API keys.
"""

from ..errors import MissingRequiredOptions
from ..models import MintedCredential, StaticKey
from .credential_provider import CredentialProvider


class StaticKeyProvider(CredentialProvider):
    """Returns a static key unchanged; it never expires."""

    source_type = StaticKey

    def mint(self, source: StaticKey) -> MintedCredential:
        """
        Pass a static key through.

        Args:
            source: The static key source

        Returns:
            MintedCredential with no issuer expiry
        """
        if not source.value:
            raise MissingRequiredOptions(["value"])
        return MintedCredential(secret_payload=source.value, issuer_expires_at=None)
