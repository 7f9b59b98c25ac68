"""
Base interface for short-lived credential providers.
"""

from abc import ABC, abstractmethod
from typing import Type

from ..models import CredentialSource, MintedCredential


class CredentialProvider(ABC):
    """Abstract base class for credential providers."""

    # Concrete source model this provider mints from
    source_type: Type[CredentialSource] = CredentialSource

    def supports(self, source: CredentialSource) -> bool:
        """
        Check if this provider can mint credentials for a source.

        Args:
            source: The credential source

        Returns:
            True if the source is an instance of source_type, False otherwise
        """
        return isinstance(source, self.source_type)

    def cache_key(self, source: CredentialSource) -> str:
        """
        Stable cache key for a source.

        Args:
            source: The credential source

        Returns:
            Key under which credentials minted from this source are cached
        """
        return source.cache_key

    @abstractmethod
    def mint(self, source: CredentialSource) -> MintedCredential:
        """
        Produce one fresh credential from a source.

        Args:
            source: The credential source

        Returns:
            The minted credential and its issuer expiry

        Raises:
            CredentialError: If the credential could not be minted
        """
        pass
