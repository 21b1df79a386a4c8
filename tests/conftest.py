"""
Pytest Configuration and Shared Fixtures

Fornisce fixture condivise per tutti i test:
- CertificateConfig di esempio (con e senza email)
- Coppia di chiavi P-256 e relativo punto non compresso (65 byte)
- SoftwareKeyStore e SigningDelegate isolati per ogni test
- StubSigner: firma fissa da 71 byte con conteggio delle chiamate

Author: SecureRoad PKI Project
Date: October 2025
"""

import os
import sys

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from protocols.certificates.keys import public_key_to_point
from protocols.certificates.names import CertificateConfig
from protocols.security.key_store import SoftwareKeyStore
from protocols.security.signing import SigningDelegate
from utils.logger import PKILogger

# SEQUENCE { INTEGER r (32 bytes), INTEGER s (33 bytes, leading 0x00) } = 71 bytes
FIXED_SIGNATURE = (
    bytes([0x30, 0x45, 0x02, 0x20]) + b"\x11" * 32
    + bytes([0x02, 0x21, 0x00]) + b"\x82" * 32
)


class StubSigner:
    """sign(bytes) -> bytes stand-in that records every call."""

    def __init__(self, signature: bytes = FIXED_SIGNATURE, error: Exception = None):
        self.signature = signature
        self.error = error
        self.calls = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def __call__(self, data: bytes) -> bytes:
        self.calls.append(bytes(data))
        if self.error is not None:
            raise self.error
        return self.signature


@pytest.fixture(autouse=True)
def reset_logger_cache():
    """I logger sono cached per nome: ripulisci la cache tra un test e l'altro."""
    yield
    PKILogger.clear_cache()


@pytest.fixture
def cert_config():
    return CertificateConfig(
        common_name="Test Device",
        organization="Example Org",
        organizational_unit="Devices",
        country="US",
        state="California",
        locality="San Francisco",
        email_address="device@example.com",
        validity_days=365,
    )


@pytest.fixture
def cert_config_no_email(cert_config):
    return CertificateConfig(
        common_name=cert_config.common_name,
        organization=cert_config.organization,
        organizational_unit=cert_config.organizational_unit,
        country=cert_config.country,
        state=cert_config.state,
        locality=cert_config.locality,
    )


@pytest.fixture
def private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def public_point(private_key):
    """Punto pubblico non compresso (0x04 || X || Y)."""
    return public_key_to_point(private_key.public_key())


@pytest.fixture
def key_store():
    return SoftwareKeyStore()


@pytest.fixture
def delegate(key_store):
    return SigningDelegate(key_store)


@pytest.fixture
def stub_signer():
    return StubSigner()
