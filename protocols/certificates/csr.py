"""
Manual PKCS #10 CSR Builder

Hand-assembles a certification request in DER because the signing key sits
behind an opaque handle that only signs caller-supplied bytes; CSR builders
that expect in-process private key bytes cannot be used.

    CertificationRequest ::= SEQUENCE {
        certificationRequestInfo  CertificationRequestInfo,
        signatureAlgorithm        AlgorithmIdentifier,   -- ecdsa-with-SHA256
        signature                 BIT STRING
    }
    CertificationRequestInfo ::= SEQUENCE {
        version        INTEGER (0),
        subject        Name,
        subjectPKInfo  SubjectPublicKeyInfo,  -- id-ecPublicKey, prime256v1
        attributes     [0] (empty)
    }

The CertificationRequestInfo bytes handed to the signer are embedded in the
final structure as-is: the outer length is the sum of the already-encoded
parts and nothing is re-encoded after signing.

Standards Reference:
- RFC 2986 - PKCS #10: Certification Request Syntax v1.7
- RFC 5480 - ECC SubjectPublicKeyInfo
- RFC 5758 - ecdsa-with-SHA256

Author: SecureRoad PKI Project
Date: October 2025
"""

from dataclasses import dataclass
from typing import Any, Callable

from interfaces.pki_interfaces import KeyReference
from protocols.certificates.keys import load_public_key, normalize_public_key
from protocols.certificates.names import CertificateConfig, DistinguishedName, build_distinguished_name
from protocols.core.errors import (
    CertificateCreationFailed,
    CertificateError,
    InvalidKeyData,
    KeyStoreError,
    SigningFailed,
)
from protocols.core.primitives import (
    TAG_SEQUENCE,
    concat_encoded,
    encode_bit_string,
    encode_context_tag,
    encode_integer,
    encode_length,
    encode_oid,
    encode_sequence,
    pem_encode,
)
from protocols.core.types import (
    CSR_VERSION,
    OID_ECDSA_WITH_SHA256,
    OID_EC_PUBLIC_KEY,
    OID_SECP256R1,
    PEM_LABEL_CERTIFICATE_REQUEST,
)
from utils.logger import PKILogger

SignFunction = Callable[[bytes], bytes]


@dataclass(frozen=True)
class CertificationRequest:
    """
    Assembled CSR.

    Attributes:
        info: CertificationRequestInfo DER, exactly the bytes that were signed
        signature: DER ECDSA signature returned by the signer
        der: Complete CertificationRequest DER
    """
    info: bytes
    signature: bytes
    der: bytes

    def to_pem(self) -> str:
        return pem_encode(self.der, PEM_LABEL_CERTIFICATE_REQUEST)


# ============================================================================
# DER ASSEMBLY
# ============================================================================


def build_subject_public_key_info(point: bytes) -> bytes:
    """SubjectPublicKeyInfo for a P-256 point: {id-ecPublicKey, prime256v1}, BIT STRING."""
    algorithm = encode_sequence(encode_oid(OID_EC_PUBLIC_KEY), encode_oid(OID_SECP256R1))
    return encode_sequence(algorithm, encode_bit_string(point))


def build_certification_request_info(point: bytes, subject: DistinguishedName) -> bytes:
    return encode_sequence(
        encode_integer(CSR_VERSION),
        subject.to_der(),
        build_subject_public_key_info(point),
        encode_context_tag(0),
    )


def assemble_certification_request(
    info: bytes, signature: bytes, signature_oid: str = OID_ECDSA_WITH_SHA256
) -> bytes:
    """
    Outer SEQUENCE over three already-encoded blocks.

    The SEQUENCE header is written by hand from the summed block lengths so
    the signed info bytes are copied verbatim.
    """
    algorithm = encode_sequence(encode_oid(signature_oid))
    signature_bits = encode_bit_string(signature)
    body, total_length = concat_encoded((info, algorithm, signature_bits))
    return bytes([TAG_SEQUENCE]) + encode_length(total_length) + body


def build_certification_request(
    public_key: Any, config: CertificateConfig, sign: SignFunction
) -> CertificationRequest:
    """
    Build and sign a CSR with any sign(bytes) -> bytes callable.

    Raises:
        UnsupportedKeyFormat: public_key is not a 65-byte uncompressed point
        InvalidKeyData: Point is not on P-256
        CertificateCreationFailed: DER assembly failed (e.g. invalid name value)
        SigningFailed: The signer raised or returned an empty signature
    """
    logger = PKILogger.get_logger("CSRBuilder")

    point = normalize_public_key(public_key)
    load_public_key(point)

    try:
        info = build_certification_request_info(point, build_distinguished_name(config))
    except ValueError as e:
        raise CertificateCreationFailed(str(e)) from e

    logger.debug(f"CertificationRequestInfo built ({len(info)} bytes), requesting signature")

    try:
        signature = sign(info)
    except CertificateError:
        raise
    except Exception as e:
        raise SigningFailed(str(e)) from e

    if not signature:
        raise SigningFailed("signer returned an empty signature")
    signature = bytes(signature)

    try:
        der = assemble_certification_request(info, signature)
    except ValueError as e:
        raise CertificateCreationFailed(str(e)) from e

    logger.info(f"✅ CSR created for '{config.common_name}' ({len(der)} bytes)")
    return CertificationRequest(info=info, signature=signature, der=der)


# ============================================================================
# ENTRY POINTS
# ============================================================================


def create_csr_with_signer(public_key: Any, config: CertificateConfig, sign: SignFunction) -> str:
    """PEM CSR for public_key, signed by sign(bytes) -> bytes."""
    return build_certification_request(public_key, config, sign).to_pem()


def create_csr(public_key: Any, config: CertificateConfig, delegate) -> str:
    """
    PEM CSR for a key held by the delegate's key store.

    The key format is validated before the store is searched; the handle is
    found by comparing exported public keys.

    Args:
        public_key: 65-byte uncompressed point, EC public key, or key handle
        config: CSR subject
        delegate: SigningDelegate (find_key / signer_for)

    Raises:
        UnsupportedKeyFormat: Key is not a 65-byte uncompressed point
        InvalidKeyData: No stored key matches public_key
        UnsupportedAlgorithm: The key cannot sign with ES256
        SigningFailed: The store failed to sign
    """
    point = normalize_public_key(public_key)
    load_public_key(point)

    handle = delegate.find_key(KeyReference.from_public_key(point))
    return build_certification_request(point, config, delegate.signer_for(handle)).to_pem()


def create_csr_for_key_tag(key_tag: str, config: CertificateConfig, delegate) -> str:
    """
    PEM CSR for the key stored under key_tag.

    Looks the key up by tag, exports its public point and continues as
    create_csr().

    Raises:
        InvalidKeyData: No key under key_tag, or its public key cannot be exported
    """
    handle = delegate.find_key(KeyReference.from_tag(key_tag))
    try:
        point = handle.export_public_key()
    except KeyStoreError as e:
        raise InvalidKeyData(str(e)) from e
    return create_csr(point, config, delegate)
