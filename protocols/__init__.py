"""
Signing Certificate Protocol Implementations

Builds the X.509 material a content-signing engine needs: a three-tier
certificate chain and PKCS #10 requests signed through an opaque key store.

Module Structure:
- core/: DER primitives, OIDs and enums, typed errors
- certificates/: Distinguished names, chain factory, CSR builder, ASN.1 schema
- security/: Software key store and signing delegate

Subpackages are imported explicitly (e.g. ``from protocols.certificates import
build_certificate_chain``) so that the key store contract in ``interfaces``
can depend on ``protocols.core`` alone.

Standards Reference:
- RFC 5280 - X.509 Certificate and CRL Profile
- RFC 2986 - PKCS #10 Certification Request Syntax
- ITU-T X.690 - DER encoding rules

Author: SecureRoad PKI Project
Date: October 2025
"""

__version__ = "1.0.0"

from .core import (
    CertificateCreationFailed,
    CertificateError,
    InvalidKeyData,
    KeyUsagePurpose,
    SigningAlgorithm,
    SigningFailed,
    UnsupportedAlgorithm,
    UnsupportedKeyFormat,
)

__all__ = [
    "__version__",
    "CertificateError",
    "InvalidKeyData",
    "UnsupportedKeyFormat",
    "UnsupportedAlgorithm",
    "SigningFailed",
    "CertificateCreationFailed",
    "KeyUsagePurpose",
    "SigningAlgorithm",
]
