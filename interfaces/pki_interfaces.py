"""
PKI Abstract Interfaces - Key Store Contract

The signing key may live behind a hardware or OS key store that never hands
out private key bytes. This module defines the narrow contract the CSR builder
and the signing delegate consume:

- KeyStore: find / create / export / sign, implemented by the external store
- KeyHandle: opaque capability returned by the store; exposes only
  export_public_key() and sign()
- KeyPolicy: creation parameters (allowed algorithms, user presence)
- KeyReference: what a caller knows about a key (public point or tag)

SoftwareKeyStore (protocols.security.key_store) is the in-process
implementation used for development and tests.

Author: SecureRoad PKI Project
Date: October 2025
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Optional

from protocols.core.types import SigningAlgorithm


@dataclass(frozen=True)
class KeyPolicy:
    """
    Parameters for creating a key in a store.

    Attributes:
        algorithms: Algorithms the key may sign with
        user_presence: Signing requires user presence / biometric confirmation
        label: Optional human-readable label
    """
    algorithms: FrozenSet[SigningAlgorithm] = field(
        default_factory=lambda: frozenset({SigningAlgorithm.ES256})
    )
    user_presence: bool = False
    label: Optional[str] = None


@dataclass(frozen=True)
class KeyReference:
    """
    Either a concrete public key (65-byte uncompressed point) or a lookup tag.
    Exactly one of the two is set; never any private key material.
    """
    public_key: Optional[bytes] = None
    tag: Optional[str] = None

    def __post_init__(self):
        if (self.public_key is None) == (self.tag is None):
            raise ValueError("KeyReference needs exactly one of public_key or tag")

    @classmethod
    def from_public_key(cls, public_key: bytes) -> "KeyReference":
        return cls(public_key=bytes(public_key))

    @classmethod
    def from_tag(cls, tag: str) -> "KeyReference":
        return cls(tag=tag)

    def describe(self) -> str:
        if self.tag is not None:
            return f"tag '{self.tag}'"
        return f"public key {self.public_key[1:9].hex()}..."


class KeyHandle:
    """
    Opaque reference to a key held by a KeyStore.

    A handle never carries private key material; its lifetime is managed by
    the store that issued it.
    """

    __slots__ = ("tag", "_store", "_ref")

    def __init__(self, store: "KeyStore", tag: str, ref: Any = None):
        self.tag = tag
        self._store = store
        self._ref = ref if ref is not None else tag

    @property
    def ref(self) -> Any:
        """Store-internal reference; meaningful only to the issuing store."""
        return self._ref

    @property
    def store(self) -> "KeyStore":
        return self._store

    def export_public_key(self) -> bytes:
        """Public key as 65-byte uncompressed point."""
        return self._store.export_public_key(self)

    def supports(self, algorithm: SigningAlgorithm) -> bool:
        return self._store.is_algorithm_supported(self, algorithm)

    def sign(self, data: bytes, algorithm: SigningAlgorithm = SigningAlgorithm.ES256) -> bytes:
        """DER-encoded ECDSA signature over data."""
        return self._store.sign(self, data, algorithm)

    def __eq__(self, other) -> bool:
        if not isinstance(other, KeyHandle):
            return NotImplemented
        return self._store is other._store and self._ref == other._ref

    def __hash__(self) -> int:
        return hash((id(self._store), self._ref))

    def __repr__(self) -> str:
        return f"KeyHandle(tag={self.tag!r})"


class KeyStore(ABC):
    """
    Abstract interface for an external key store.

    Implementations: SoftwareKeyStore (in-memory, cryptography backed).
    Hardware-backed stores implement the same methods around their native
    handles.
    """

    @abstractmethod
    def find_by_tag(self, tag: str) -> Optional[KeyHandle]:
        """
        Look up a key by its application tag.

        Returns:
            KeyHandle, or None if no key carries the tag
        """
        pass

    @abstractmethod
    def list_handles(self) -> Iterable[KeyHandle]:
        """All handles this store can sign with."""
        pass

    def find_by_public_key(self, public_key: bytes) -> Optional[KeyHandle]:
        """
        Find the handle whose exported public key equals public_key.

        Scans list_handles() and compares exported bytes; stores with an
        indexed lookup should override this.
        """
        for handle in self.list_handles():
            if self.export_public_key(handle) == public_key:
                return handle
        return None

    @abstractmethod
    def create_key(self, tag: str, policy: Optional[KeyPolicy] = None) -> KeyHandle:
        """
        Create a new P-256 key under tag.

        Raises:
            KeyAlreadyExists: If a key with this tag already exists
            KeyStoreError: On any other store failure
        """
        pass

    @abstractmethod
    def delete_key(self, tag: str) -> bool:
        """
        Delete the key stored under tag.

        Returns:
            True if the key was deleted or did not exist
        """
        pass

    @abstractmethod
    def export_public_key(self, handle: KeyHandle) -> bytes:
        """
        Export the public counterpart of handle as a 65-byte uncompressed point.

        Raises:
            KeyStoreError: If the handle is unknown to this store
        """
        pass

    @abstractmethod
    def is_algorithm_supported(self, handle: KeyHandle, algorithm: SigningAlgorithm) -> bool:
        pass

    @abstractmethod
    def sign(self, handle: KeyHandle, data: bytes, algorithm: SigningAlgorithm) -> bytes:
        """
        Sign data with the key behind handle.

        May block on a hardware boundary or on user confirmation.

        Returns:
            DER-encoded ECDSA signature

        Raises:
            KeyStoreError: If the store fails to sign
        """
        pass
