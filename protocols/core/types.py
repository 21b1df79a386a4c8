"""
Core Types and Constants

Defines object identifiers, signing algorithm enumeration and key-usage
purposes shared by the DER primitives, the chain factory and the CSR builder.

Standards Reference:
- RFC 5280 - Internet X.509 PKI Certificate and CRL Profile
- RFC 2986 - PKCS #10: Certification Request Syntax
- RFC 5480 - Elliptic Curve Cryptography Subject Public Key Information
- RFC 5758 - ECDSA signature algorithm identifiers

Author: SecureRoad PKI Project
Date: October 2025
"""

from enum import Enum

from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtendedKeyUsageOID


# ============================================================================
# OBJECT IDENTIFIERS
# ============================================================================

# SubjectPublicKeyInfo (RFC 5480)
OID_EC_PUBLIC_KEY = "1.2.840.10045.2.1"
OID_SECP256R1 = "1.2.840.10045.3.1.7"

# Signature algorithms (RFC 5758)
OID_ECDSA_WITH_SHA256 = "1.2.840.10045.4.3.2"
OID_ECDSA_WITH_SHA384 = "1.2.840.10045.4.3.3"
OID_ECDSA_WITH_SHA512 = "1.2.840.10045.4.3.4"

# Distinguished name attribute types (X.520 / PKCS #9)
OID_COMMON_NAME = "2.5.4.3"
OID_COUNTRY_NAME = "2.5.4.6"
OID_LOCALITY_NAME = "2.5.4.7"
OID_STATE_OR_PROVINCE_NAME = "2.5.4.8"
OID_ORGANIZATION_NAME = "2.5.4.10"
OID_ORGANIZATIONAL_UNIT_NAME = "2.5.4.11"
OID_EMAIL_ADDRESS = "1.2.840.113549.1.9.1"

# P-256 uncompressed point: 0x04 || X (32) || Y (32)
UNCOMPRESSED_POINT_PREFIX = 0x04
UNCOMPRESSED_POINT_SIZE = 65

# CertificationRequestInfo version (PKCS #10 v1)
CSR_VERSION = 0

PEM_LABEL_CERTIFICATE = "CERTIFICATE"
PEM_LABEL_CERTIFICATE_REQUEST = "CERTIFICATE REQUEST"


# ============================================================================
# ENUMERATIONS
# ============================================================================


class SigningAlgorithm(Enum):
    """
    ECDSA signing algorithms a key handle may be asked to use.

    Only ES256 matches the P-256 subject keys this package issues; ES384 and
    ES512 exist so a store can refuse them with UnsupportedAlgorithm.
    """

    ES256 = "es256"
    ES384 = "es384"
    ES512 = "es512"

    @property
    def hash_algorithm(self) -> hashes.HashAlgorithm:
        return {
            SigningAlgorithm.ES256: hashes.SHA256(),
            SigningAlgorithm.ES384: hashes.SHA384(),
            SigningAlgorithm.ES512: hashes.SHA512(),
        }[self]

    @property
    def signature_oid(self) -> str:
        return {
            SigningAlgorithm.ES256: OID_ECDSA_WITH_SHA256,
            SigningAlgorithm.ES384: OID_ECDSA_WITH_SHA384,
            SigningAlgorithm.ES512: OID_ECDSA_WITH_SHA512,
        }[self]

    @classmethod
    def from_signature_oid(cls, oid: str) -> "SigningAlgorithm":
        for algorithm in cls:
            if algorithm.signature_oid == oid:
                return algorithm
        raise ValueError(f"Unknown signature algorithm OID: {oid}")


class KeyUsagePurpose(Enum):
    """Extended key usage purposes accepted for the end-entity certificate."""

    EMAIL_PROTECTION = "emailProtection"
    CODE_SIGNING = "codeSigning"
    TIME_STAMPING = "timeStamping"
    CLIENT_AUTH = "clientAuth"

    @property
    def oid(self):
        return {
            KeyUsagePurpose.EMAIL_PROTECTION: ExtendedKeyUsageOID.EMAIL_PROTECTION,
            KeyUsagePurpose.CODE_SIGNING: ExtendedKeyUsageOID.CODE_SIGNING,
            KeyUsagePurpose.TIME_STAMPING: ExtendedKeyUsageOID.TIME_STAMPING,
            KeyUsagePurpose.CLIENT_AUTH: ExtendedKeyUsageOID.CLIENT_AUTH,
        }[self]
