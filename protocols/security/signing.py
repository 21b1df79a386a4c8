"""
Signing Delegate

Resolves a KeyReference (public point or lookup tag) to an opaque KeyHandle
and asks the key store to sign caller-supplied bytes. Private key bytes never
pass through here.

Per call:  Idle -> Resolving -> Found -> Signing -> Signed | SignFailed
                            \\-> NotFound
Terminal failures surface as InvalidKeyData (NotFound), UnsupportedAlgorithm
or SigningFailed. There are no retries; callers wanting retry semantics
re-invoke.

SigningCredentials bundles what the downstream content-signing engine
consumes: a PEM certificate chain plus a sign(bytes) -> bytes capability.

Author: SecureRoad PKI Project
Date: October 2025
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from interfaces.pki_interfaces import KeyHandle, KeyPolicy, KeyReference, KeyStore
from protocols.certificates.chain import (
    DEFAULT_END_ENTITY_PURPOSES,
    Purpose,
    create_self_signed_certificate_chain,
)
from protocols.certificates.names import CertificateConfig
from protocols.core.errors import (
    CertificateError,
    InvalidKeyData,
    KeyStoreError,
    SigningFailed,
    UnsupportedAlgorithm,
)
from protocols.core.types import SigningAlgorithm
from protocols.security.key_store import find_or_create_key
from utils.logger import PKILogger

SignFunction = Callable[[bytes], bytes]


class SigningDelegate:
    """
    Signs bytes with keys held by an injected KeyStore.

    The store call may block on a hardware boundary or on user confirmation;
    no timeout is imposed here.
    """

    def __init__(self, store: KeyStore):
        self.store = store
        self.logger = PKILogger.get_logger("SigningDelegate")

    def find_key(self, reference: KeyReference) -> KeyHandle:
        """
        Resolve reference to a handle.

        Raises:
            InvalidKeyData: No matching key (NotFound) or the store failed
        """
        self.logger.debug(f"Resolving key by {reference.describe()}")
        try:
            if reference.tag is not None:
                handle = self.store.find_by_tag(reference.tag)
            else:
                handle = self.store.find_by_public_key(reference.public_key)
        except CertificateError:
            raise
        except Exception as e:
            self.logger.error(f"Key lookup by {reference.describe()} failed: {e}")
            raise InvalidKeyData(str(e)) from e

        if handle is None:
            self.logger.warning(f"No key found for {reference.describe()}")
            raise InvalidKeyData(f"no key found for {reference.describe()}")
        return handle

    def sign(
        self,
        handle: KeyHandle,
        data: bytes,
        algorithm: SigningAlgorithm = SigningAlgorithm.ES256,
    ) -> bytes:
        """
        Sign data unmodified with the key behind handle.

        Returns:
            DER-encoded ECDSA signature

        Raises:
            UnsupportedAlgorithm: The store refuses algorithm for this handle
            SigningFailed: Store-level error or empty signature
        """
        try:
            supported = self.store.is_algorithm_supported(handle, algorithm)
        except CertificateError:
            raise
        except Exception as e:
            raise SigningFailed(str(e)) from e
        if not supported:
            raise UnsupportedAlgorithm(f"key '{handle.tag}' does not support {algorithm.value}")

        try:
            signature = self.store.sign(handle, data, algorithm)
        except CertificateError:
            raise
        except Exception as e:
            self.logger.error(f"Signing with '{handle.tag}' failed: {e}")
            raise SigningFailed(str(e)) from e

        if not signature:
            raise SigningFailed("key store returned an empty signature")

        self.logger.debug(f"Signed {len(data)} bytes with '{handle.tag}'")
        return bytes(signature)

    def signer_for(
        self, handle: KeyHandle, algorithm: SigningAlgorithm = SigningAlgorithm.ES256
    ) -> SignFunction:
        """Bind handle and algorithm into a sign(bytes) -> bytes callable."""

        def sign(data: bytes) -> bytes:
            return self.sign(handle, data, algorithm)

        return sign


@dataclass(frozen=True)
class SigningCredentials:
    """Certificate chain and signing capability for the content-signing engine."""

    algorithm: SigningAlgorithm
    certificate_chain_pem: str
    sign: SignFunction
    tsa_url: Optional[str] = None


def create_signing_credentials(
    delegate: SigningDelegate,
    key_tag: str,
    config: CertificateConfig,
    policy: Optional[KeyPolicy] = None,
    certificate_chain_pem: Optional[str] = None,
    tsa_url: Optional[str] = None,
    extended_key_usage: Sequence[Purpose] = DEFAULT_END_ENTITY_PURPOSES,
) -> SigningCredentials:
    """
    Find or create the key under key_tag and pair it with a certificate chain.

    When certificate_chain_pem is None a self-signed development chain is
    built for the key's public point; otherwise the given chain (for example
    one returned by the enrollment service) is used as-is.
    """
    try:
        handle = find_or_create_key(delegate.store, key_tag, policy)
    except KeyStoreError as e:
        raise InvalidKeyData(str(e)) from e

    if certificate_chain_pem is None:
        certificate_chain_pem = create_self_signed_certificate_chain(
            handle, config, extended_key_usage=extended_key_usage
        )

    return SigningCredentials(
        algorithm=SigningAlgorithm.ES256,
        certificate_chain_pem=certificate_chain_pem,
        sign=delegate.signer_for(handle),
        tsa_url=tsa_url,
    )
