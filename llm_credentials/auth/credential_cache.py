"""
Credential cache coordinating multiple credential providers.

Caches short-lived credentials per source and guarantees that at most one
mint is in flight per cache key, however many threads ask for it at once.
"""

import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import ExchangeFailed, UnsupportedSource
from ..models import CachedCredential, CredentialSource, MintedCredential
from .assume_role_provider import AssumeRoleProvider
from .credential_provider import CredentialProvider
from .service_account_provider import ServiceAccountProvider
from .static_key_provider import StaticKeyProvider

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_MARGIN_SECONDS = 300


class CredentialCache:
    """Per-source cache of minted credentials with single-flight refresh."""

    def __init__(
        self,
        providers: Optional[List[CredentialProvider]] = None,
        safety_margin_seconds: float = DEFAULT_SAFETY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache with a list of providers.

        Args:
            providers: Providers to mint with. If None, uses default providers.
            safety_margin_seconds: Seconds cut from every issuer lifetime before caching
            clock: Source of the current UNIX time
        """
        if providers is None:
            self.providers = [
                ServiceAccountProvider(),
                AssumeRoleProvider(),
                StaticKeyProvider(),
            ]
        else:
            self.providers = providers
        self.safety_margin_seconds = safety_margin_seconds
        self.clock = clock

        self._lock = threading.Lock()
        self._entries: Dict[str, CachedCredential] = {}
        self._in_flight: Dict[str, Future] = {}

    def provider_for(self, source: CredentialSource) -> CredentialProvider:
        """
        Find the provider bound to a source.

        Raises:
            UnsupportedSource: If no provider supports the source type
        """
        for provider in self.providers:
            if provider.supports(source):
                return provider
        raise UnsupportedSource(type(source).__name__)

    def _lookup(self, source: CredentialSource) -> Tuple[CredentialProvider, str]:
        provider = self.provider_for(source)
        return provider, provider.cache_key(source)

    def _to_cached(self, minted: MintedCredential, minted_at: float) -> CachedCredential:
        expires_at = None
        if minted.issuer_expires_at is not None:
            expires_at = minted.issuer_expires_at - self.safety_margin_seconds
        return CachedCredential(
            secret_payload=minted.secret_payload,
            expires_at=expires_at,
            minted_at=minted_at,
        )

    def get_or_refresh(self, source: CredentialSource) -> CachedCredential:
        """
        Return a valid cached credential, minting a new one on miss or expiry.

        Concurrent callers for the same key share one mint: the first caller
        runs it and the rest wait for its result or its exception.

        A credential minted with less than the safety margin left is still
        handed to the callers of that mint, once, but is never served from
        the cache. One that has already expired is rejected.

        Args:
            source: The credential source

        Returns:
            The cached credential

        Raises:
            CredentialError: Whatever the provider raised; failures are never cached
            ExchangeFailed: If the issuer returned an already expired credential
        """
        provider, key = self._lookup(source)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_valid(self.clock()):
                logger.debug(f"Credential cache hit for {key}")
                return entry

            flight = self._in_flight.get(key)
            leader = flight is None
            if leader:
                flight = Future()
                flight.set_running_or_notify_cancel()
                self._in_flight[key] = flight

        if not leader:
            logger.debug(f"Waiting for in-flight mint of {key}")
            return flight.result()

        logger.debug(f"Credential cache miss for {key}, minting")
        try:
            cached = self._mint_and_store(provider, source, key, flight)
        except BaseException as e:
            with self._lock:
                if self._in_flight.get(key) is flight:
                    del self._in_flight[key]
            flight.set_exception(e)
            raise
        flight.set_result(cached)
        return cached

    def _mint_and_store(
        self,
        provider: CredentialProvider,
        source: CredentialSource,
        key: str,
        flight: Future,
    ) -> CachedCredential:
        minted = provider.mint(source)
        now = self.clock()
        if minted.issuer_expires_at is not None and minted.issuer_expires_at <= now:
            raise ExchangeFailed(
                f"Issuer returned a credential for {key} that has already expired",
                details={"issuer_expires_at": minted.issuer_expires_at, "now": now},
            )

        cached = self._to_cached(minted, now)
        if not cached.is_valid(now):
            logger.warning(
                f"Credential for {key} was minted inside its {self.safety_margin_seconds}s "
                f"safety margin and will not be reused"
            )

        with self._lock:
            # invalidate() or clear_all() during the mint detaches the flight
            if self._in_flight.get(key) is flight:
                del self._in_flight[key]
                self._entries[key] = cached
                ttl = cached.ttl(now)
                logger.debug(
                    f"Cached credential for {key}, "
                    + ("never expires" if ttl is None else f"expires in {ttl:.0f}s")
                )
        return cached

    def get_token(self, source: CredentialSource) -> Any:
        """Shortcut for get_or_refresh(source).secret_payload."""
        return self.get_or_refresh(source).secret_payload

    def invalidate(self, source: CredentialSource) -> None:
        """
        Drop the cached credential for a source. Idempotent.

        A mint already running for the source still answers its waiters but
        its result is not stored. Sources no provider supports are ignored.
        """
        try:
            _, key = self._lookup(source)
        except UnsupportedSource:
            return
        with self._lock:
            self._entries.pop(key, None)
            self._in_flight.pop(key, None)
        logger.debug(f"Invalidated cached credential for {key}")

    def clear_all(self) -> None:
        """Drop every cached credential."""
        with self._lock:
            self._entries.clear()
            self._in_flight.clear()
        logger.debug("Credential cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, source: CredentialSource) -> bool:
        try:
            _, key = self._lookup(source)
        except UnsupportedSource:
            return False
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.is_valid(self.clock())
