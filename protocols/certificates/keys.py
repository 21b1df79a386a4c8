"""
Key Material Adapter

Normalizes externally supplied public keys into the canonical 65-byte
uncompressed P-256 point (0x04 || X || Y) and computes key identifiers.
Anything else (compressed points, other curves, DER SPKI blobs) is rejected
with UnsupportedKeyFormat before any DER is built or any signature requested.
"""

from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey

from protocols.core.errors import InvalidKeyData, KeyStoreError, UnsupportedKeyFormat
from protocols.core.types import UNCOMPRESSED_POINT_PREFIX, UNCOMPRESSED_POINT_SIZE


def validate_uncompressed_point(data: bytes) -> bytes:
    """
    Check that data is a 65-byte uncompressed EC point.

    Raises:
        UnsupportedKeyFormat: On any other length or prefix
    """
    data = bytes(data)
    if len(data) != UNCOMPRESSED_POINT_SIZE or data[0] != UNCOMPRESSED_POINT_PREFIX:
        prefix = f"0x{data[0]:02x}" if data else "empty"
        raise UnsupportedKeyFormat(
            f"expected {UNCOMPRESSED_POINT_SIZE}-byte uncompressed point, "
            f"got {len(data)} bytes (prefix {prefix})"
        )
    return data


def public_key_to_point(public_key: EllipticCurvePublicKey) -> bytes:
    """Serialize a P-256 public key as X9.62 uncompressed point."""
    if not isinstance(public_key.curve, ec.SECP256R1):
        raise UnsupportedKeyFormat(
            f"only P-256 (SECP256R1) is supported, got {type(public_key.curve).__name__}"
        )
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def normalize_public_key(key: Any) -> bytes:
    """
    Accept raw point bytes, a cryptography EC public key, or a key handle
    (anything with export_public_key()) and return the canonical point.

    Raises:
        UnsupportedKeyFormat: Wrong encoding or curve
        InvalidKeyData: Unknown key object or the handle cannot export its key
    """
    if isinstance(key, EllipticCurvePublicKey):
        return public_key_to_point(key)

    if isinstance(key, (bytes, bytearray, memoryview)):
        return validate_uncompressed_point(bytes(key))

    export = getattr(key, "export_public_key", None)
    if callable(export):
        try:
            exported = export()
        except KeyStoreError as e:
            raise InvalidKeyData(str(e)) from e
        return validate_uncompressed_point(exported)

    raise InvalidKeyData(f"cannot read a public key from {type(key).__name__}")


def load_public_key(point: bytes) -> EllipticCurvePublicKey:
    """
    Parse a validated point into a cryptography public key.

    Raises:
        UnsupportedKeyFormat: Not a 65-byte uncompressed point
        InvalidKeyData: Point is not on the P-256 curve
    """
    point = validate_uncompressed_point(point)
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), point)
    except ValueError as e:
        raise InvalidKeyData(f"point is not on P-256: {e}") from e


def key_identifier(point: bytes) -> bytes:
    """
    SHA-1 over the subjectPublicKey bits (RFC 5280 4.2.1.2, method 1).

    Used for both SubjectKeyIdentifier and AuthorityKeyIdentifier so the two
    always match across the chain.
    """
    digest = hashes.Hash(hashes.SHA1())
    digest.update(point)
    return digest.finalize()
