"""
Software Key Store

In-process KeyStore backed by cryptography P-256 keys. Private keys stay
inside the store: callers only ever receive KeyHandle objects and can ask for
the public point or a signature, the same surface a hardware-backed store
offers. Used for development signing and as the test double for the
external store.

Also provides:
- find_or_create_key(): find-or-create that tolerates a concurrent create
- export_public_key_pem(): SubjectPublicKeyInfo PEM for a handle

Author: SecureRoad PKI Project
Date: October 2025
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey

from interfaces.pki_interfaces import KeyHandle, KeyPolicy, KeyStore
from protocols.certificates.keys import load_public_key, public_key_to_point
from protocols.core.errors import KeyAlreadyExists, KeyStoreError
from protocols.core.types import SigningAlgorithm
from utils.logger import PKILogger


@dataclass
class _StoredKey:
    private_key: EllipticCurvePrivateKey
    policy: KeyPolicy


class SoftwareKeyStore(KeyStore):
    """
    Thread-safe in-memory key store.

    Args:
        presence_callback: Called with the key tag before signing with a key
            whose policy requires user presence; returning False refuses the
            signature. Without a callback such keys cannot sign.
        name: Logger name
    """

    def __init__(
        self,
        presence_callback: Optional[Callable[[str], bool]] = None,
        name: str = "SoftwareKeyStore",
    ):
        self._keys: Dict[str, _StoredKey] = {}
        self._lock = threading.Lock()
        self._presence_callback = presence_callback
        self.logger = PKILogger.get_logger(name)

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def find_by_tag(self, tag: str) -> Optional[KeyHandle]:
        with self._lock:
            if tag not in self._keys:
                return None
        return KeyHandle(self, tag)

    def list_handles(self) -> List[KeyHandle]:
        with self._lock:
            tags = list(self._keys)
        return [KeyHandle(self, tag) for tag in tags]

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def create_key(self, tag: str, policy: Optional[KeyPolicy] = None) -> KeyHandle:
        return self.import_private_key(tag, ec.generate_private_key(ec.SECP256R1()), policy)

    def import_private_key(
        self,
        tag: str,
        private_key: Union[EllipticCurvePrivateKey, bytes],
        policy: Optional[KeyPolicy] = None,
        password: Optional[bytes] = None,
    ) -> KeyHandle:
        """
        Store an existing P-256 private key (object or PEM bytes) under tag.

        Raises:
            KeyAlreadyExists: Tag already in use
            KeyStoreError: Key is not a P-256 EC private key
        """
        if isinstance(private_key, (bytes, bytearray)):
            try:
                private_key = serialization.load_pem_private_key(bytes(private_key), password=password)
            except (ValueError, TypeError) as e:
                raise KeyStoreError(f"Cannot load private key for '{tag}': {e}") from e

        if not isinstance(private_key, EllipticCurvePrivateKey) or not isinstance(
            private_key.curve, ec.SECP256R1
        ):
            raise KeyStoreError(f"Key for '{tag}' must be a P-256 EC private key")

        with self._lock:
            if tag in self._keys:
                raise KeyAlreadyExists(tag)
            self._keys[tag] = _StoredKey(private_key, policy or KeyPolicy())

        self.logger.info(f"Key created: tag={tag}")
        return KeyHandle(self, tag)

    def delete_key(self, tag: str) -> bool:
        with self._lock:
            removed = self._keys.pop(tag, None)
        if removed is not None:
            self.logger.info(f"Key deleted: tag={tag}")
        return True

    # ========================================================================
    # KEY OPERATIONS
    # ========================================================================

    def _entry(self, handle: KeyHandle) -> _StoredKey:
        if handle.store is not self:
            raise KeyStoreError(f"Handle {handle.tag!r} was issued by another store")
        with self._lock:
            entry = self._keys.get(handle.ref)
        if entry is None:
            raise KeyStoreError(f"Key not found for tag '{handle.tag}'")
        return entry

    def export_public_key(self, handle: KeyHandle) -> bytes:
        return public_key_to_point(self._entry(handle).private_key.public_key())

    def is_algorithm_supported(self, handle: KeyHandle, algorithm: SigningAlgorithm) -> bool:
        return algorithm in self._entry(handle).policy.algorithms

    def sign(self, handle: KeyHandle, data: bytes, algorithm: SigningAlgorithm) -> bytes:
        entry = self._entry(handle)

        if algorithm not in entry.policy.algorithms:
            raise KeyStoreError(f"Key '{handle.tag}' does not permit {algorithm.value}")

        if entry.policy.user_presence:
            if self._presence_callback is None or not self._presence_callback(handle.tag):
                raise KeyStoreError(f"User presence not confirmed for key '{handle.tag}'")

        self.logger.debug(f"Signing {len(data)} bytes with key '{handle.tag}' ({algorithm.value})")
        return entry.private_key.sign(bytes(data), ec.ECDSA(algorithm.hash_algorithm))


def find_or_create_key(
    store: KeyStore, tag: str, policy: Optional[KeyPolicy] = None
) -> KeyHandle:
    """
    Return the key under tag, creating it if missing.

    A KeyAlreadyExists from create_key() means another caller won the race;
    the key is then looked up instead of failing.
    """
    handle = store.find_by_tag(tag)
    if handle is not None:
        return handle

    try:
        return store.create_key(tag, policy)
    except KeyAlreadyExists:
        handle = store.find_by_tag(tag)
        if handle is None:
            raise KeyStoreError(f"Key '{tag}' reported as existing but lookup failed")
        return handle


def export_public_key_pem(handle: KeyHandle) -> str:
    """SubjectPublicKeyInfo PEM ("PUBLIC KEY") for the key behind handle."""
    public_key = load_public_key(handle.export_public_key())
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
