"""
X.509 Signing Certificates

- names: CertificateConfig, DistinguishedName (hand-rolled DER + x509.Name)
- keys: 65-byte uncompressed P-256 point handling
- chain: Root -> Intermediate -> End-Entity chain factory
- csr: Manual PKCS #10 builder signed through a key store
- asn1_encoder: asn1tools PKCS #10 schema for decoding and verification

Standards Reference:
- RFC 5280 - X.509 Certificate and CRL Profile
- RFC 2986 - PKCS #10 Certification Request Syntax

Author: SecureRoad PKI Project
Date: October 2025
"""

from .names import CertificateConfig, DistinguishedName, build_distinguished_name
from .keys import (
    key_identifier,
    load_public_key,
    normalize_public_key,
    public_key_to_point,
    validate_uncompressed_point,
)
from .chain import (
    DEFAULT_END_ENTITY_PURPOSES,
    CertificateBuilder,
    CertificateChain,
    CertificateChainFactory,
    build_certificate_chain,
    create_self_signed_certificate_chain,
)
from .csr import (
    CertificationRequest,
    assemble_certification_request,
    build_certification_request,
    build_certification_request_info,
    build_subject_public_key_info,
    create_csr,
    create_csr_for_key_tag,
    create_csr_with_signer,
)
from .asn1_encoder import (
    asn1_compiler,
    decode_csr_der,
    decode_csr_pem,
    extract_certification_request_info,
    verify_csr_signature,
)

__all__ = [
    # Names
    "CertificateConfig",
    "DistinguishedName",
    "build_distinguished_name",

    # Keys
    "key_identifier",
    "load_public_key",
    "normalize_public_key",
    "public_key_to_point",
    "validate_uncompressed_point",

    # Chain
    "DEFAULT_END_ENTITY_PURPOSES",
    "CertificateBuilder",
    "CertificateChain",
    "CertificateChainFactory",
    "build_certificate_chain",
    "create_self_signed_certificate_chain",

    # CSR
    "CertificationRequest",
    "assemble_certification_request",
    "build_certification_request",
    "build_certification_request_info",
    "build_subject_public_key_info",
    "create_csr",
    "create_csr_for_key_tag",
    "create_csr_with_signer",

    # ASN.1 helpers
    "asn1_compiler",
    "decode_csr_der",
    "decode_csr_pem",
    "extract_certification_request_info",
    "verify_csr_signature",
]
