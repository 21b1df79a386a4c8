"""
Core Types and Utilities

Foundational pieces shared by the certificate chain factory and the CSR builder.

Submodules:
- types: OIDs, signing algorithms, key-usage purposes
- primitives: DER tag/length/value encoders and PEM framing
- errors: Error taxonomy

Author: SecureRoad PKI Project
Date: October 2025
"""

from .errors import (
    CertificateCreationFailed,
    CertificateError,
    EnrollmentError,
    InvalidKeyData,
    KeyAlreadyExists,
    KeyStoreError,
    SigningFailed,
    UnsupportedAlgorithm,
    UnsupportedKeyFormat,
)
from .primitives import (
    encode_bit_string,
    encode_context_tag,
    encode_ia5_string,
    encode_integer,
    encode_length,
    encode_oid,
    encode_printable_string,
    encode_sequence,
    encode_set,
    encode_tlv,
    encode_utf8_string,
    pem_blocks,
    pem_decode,
    pem_encode,
    read_tlv,
)
from .types import (
    OID_ECDSA_WITH_SHA256,
    OID_EC_PUBLIC_KEY,
    OID_SECP256R1,
    KeyUsagePurpose,
    SigningAlgorithm,
)

__all__ = [
    # Errors
    "CertificateError",
    "InvalidKeyData",
    "UnsupportedKeyFormat",
    "UnsupportedAlgorithm",
    "SigningFailed",
    "CertificateCreationFailed",
    "KeyStoreError",
    "KeyAlreadyExists",
    "EnrollmentError",

    # DER / PEM
    "encode_length",
    "encode_tlv",
    "read_tlv",
    "encode_sequence",
    "encode_set",
    "encode_context_tag",
    "encode_integer",
    "encode_oid",
    "encode_bit_string",
    "encode_utf8_string",
    "encode_printable_string",
    "encode_ia5_string",
    "pem_encode",
    "pem_decode",
    "pem_blocks",

    # Types
    "OID_EC_PUBLIC_KEY",
    "OID_SECP256R1",
    "OID_ECDSA_WITH_SHA256",
    "SigningAlgorithm",
    "KeyUsagePurpose",
]
