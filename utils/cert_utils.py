"""
Certificate utility functions for signing certificate chains.

Provides helper functions for PEM chain parsing, SKI/AKI extraction,
identifier generation and chain linkage checks.

NOTA IMPORTANTE - Gestione Datetime con cryptography:
-----------------------------------------------------
Usa sempre not_valid_before_utc / not_valid_after_utc (cryptography 42+):
restituiscono datetime UTC-aware, a differenza dei vecchi attributi naive.
"""

from datetime import datetime, timezone
from typing import List, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtensionOID


def load_pem_chain(pem: str) -> List[x509.Certificate]:
    """
    Parse every CERTIFICATE block of a PEM chain, in document order.

    Raises:
        ValueError: If the text holds no certificate or a block is malformed
    """
    data = pem.encode("ascii") if isinstance(pem, str) else pem
    return x509.load_pem_x509_certificates(data)


def get_certificate_ski(certificate: x509.Certificate) -> str:
    """
    Extracts Subject Key Identifier (SKI) from certificate in hex format.

    Returns SKI extension value if present, otherwise the SHA-1 of the
    uncompressed public point (same method used when issuing).

    Returns:
        SKI as hex uppercase string
    """
    try:
        ski_ext = certificate.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_KEY_IDENTIFIER)
        return ski_ext.value.digest.hex().upper()
    except x509.ExtensionNotFound:
        point = certificate.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
        digest = hashes.Hash(hashes.SHA1())
        digest.update(point)
        return digest.finalize().hex().upper()


def get_authority_key_identifier(certificate: x509.Certificate) -> Optional[str]:
    """AKI keyIdentifier in hex uppercase, or None if the extension is absent."""
    try:
        aki_ext = certificate.extensions.get_extension_for_oid(
            ExtensionOID.AUTHORITY_KEY_IDENTIFIER
        )
    except x509.ExtensionNotFound:
        return None
    key_id = aki_ext.value.key_identifier
    return key_id.hex().upper() if key_id is not None else None


def get_certificate_identifier(certificate: x509.Certificate) -> str:
    """
    Generates unique certificate identifier (Subject + SKI).

    Format: "CN=EntityName,..._SKI-{first12chars}"
    """
    subject = certificate.subject.rfc4514_string()
    ski = get_certificate_ski(certificate)
    return f"{subject}_SKI-{ski[:12]}"


def get_certificate_expiry_time(certificate: x509.Certificate) -> datetime:
    return certificate.not_valid_after_utc


def get_certificate_not_before(certificate: x509.Certificate) -> datetime:
    return certificate.not_valid_before_utc


def is_certificate_valid_at(
    certificate: x509.Certificate, timestamp: Optional[datetime] = None
) -> bool:
    """
    Checks if certificate is valid at a given time.

    Args:
        certificate: X.509 certificate
        timestamp: Time to check (default: current UTC time)
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    return get_certificate_not_before(certificate) <= timestamp <= get_certificate_expiry_time(certificate)


def verify_issued_by(certificate: x509.Certificate, issuer: x509.Certificate) -> bool:
    """
    True if certificate names issuer, its AKI matches the issuer SKI and its
    ECDSA signature verifies with the issuer public key.
    """
    if certificate.issuer != issuer.subject:
        return False
    if get_authority_key_identifier(certificate) != get_certificate_ski(issuer):
        return False

    try:
        issuer.public_key().verify(
            certificate.signature,
            certificate.tbs_certificate_bytes,
            ec.ECDSA(certificate.signature_hash_algorithm),
        )
    except InvalidSignature:
        return False
    return True


def verify_chain_linkage(chain: List[x509.Certificate]) -> bool:
    """
    Check a leaf-first chain: each certificate is issued by the next one and
    the last one is self-signed.
    """
    if not chain:
        return False

    for certificate, issuer in zip(chain, chain[1:]):
        if not verify_issued_by(certificate, issuer):
            return False

    root = chain[-1]
    if root.issuer != root.subject:
        return False
    try:
        root.public_key().verify(
            root.signature,
            root.tbs_certificate_bytes,
            ec.ECDSA(root.signature_hash_algorithm),
        )
    except InvalidSignature:
        return False
    return True


def format_certificate_info(certificate: x509.Certificate) -> str:
    """
    Formats certificate information as human-readable string.
    """
    subject = certificate.subject.rfc4514_string()
    issuer = certificate.issuer.rfc4514_string()
    not_before = get_certificate_not_before(certificate)
    not_after = get_certificate_expiry_time(certificate)

    try:
        basic = certificate.extensions.get_extension_for_oid(ExtensionOID.BASIC_CONSTRAINTS).value
        ca_line = f"CA: {basic.ca} (path length: {basic.path_length})\n"
    except x509.ExtensionNotFound:
        ca_line = "CA: N/A\n"

    return (
        f"Subject: {subject}\n"
        f"Issuer: {issuer}\n"
        f"ID: {get_certificate_identifier(certificate)}\n"
        f"Serial: {certificate.serial_number}\n"
        f"SKI: {get_certificate_ski(certificate)[:16]}...\n"
        f"{ca_line}"
        f"Validity: {not_before.strftime('%Y-%m-%d %H:%M:%S')} to "
        f"{not_after.strftime('%Y-%m-%d %H:%M:%S')}"
    )
