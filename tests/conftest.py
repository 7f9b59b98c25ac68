"""
Shared fixtures for the credential tests.
"""

import json
import threading
import time
from typing import Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from llm_credentials.auth.credential_provider import CredentialProvider
from llm_credentials.models import MintedCredential, ServiceAccountFile

START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced UNIX clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingProvider(CredentialProvider):
    """Provider that records every mint and can block or fail on demand."""

    source_type = ServiceAccountFile

    def __init__(
        self,
        clock,
        lifetime: Optional[float] = 3600,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ):
        self.clock = clock
        self.lifetime = lifetime
        self.delay = delay
        self.error = error
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()
        self.release.set()
        self._lock = threading.Lock()

    def mint(self, source):
        with self._lock:
            self.calls += 1
            call = self.calls
        self.started.set()
        self.release.wait(timeout=5)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        expires = None if self.lifetime is None else self.clock() + self.lifetime
        return MintedCredential(secret_payload=f"token-{call}", issuer_expires_at=expires)


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture(scope="session")
def rsa_private_key():
    """RSA key shared by the whole session; generation is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_pem(rsa_private_key):
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account_file(tmp_path, rsa_private_pem):
    """Write a service account JSON document and return its path."""
    path = tmp_path / "service-account.json"
    path.write_text(
        json.dumps(
            {
                "type": "service_account",
                "project_id": "test-project",
                "private_key_id": "abc123",
                "private_key": rsa_private_pem,
                "client_email": "vertex@test-project.iam.gserviceaccount.com",
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
    )
    return str(path)


@pytest.fixture
def make_provider(clock):
    """Factory for CountingProvider instances bound to the fake clock."""

    def factory(**kwargs):
        return CountingProvider(clock, **kwargs)

    return factory
