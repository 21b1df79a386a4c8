"""
Certificate Chain Factory

Synthesizes a throwaway three-tier trust chain for development signing:

    Root CA (self-issued) -> Intermediate CA -> End-Entity

Root and intermediate keys are generated here and discarded when the call
returns; the end-entity public key is supplied by the caller (typically
exported from a hardware-backed key handle). Output is a leaf-first PEM chain,
the format the downstream signing engine expects.

Standards Reference:
- RFC 5280 Section 4.2.1 - Certificate extensions
- RFC 5480 - ECC SubjectPublicKeyInfo

Author: SecureRoad PKI Project
Date: October 2025
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, List, NamedTuple, Optional, Sequence, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey,
    EllipticCurvePublicKey,
)

from config.pki_config import PKI_CONSTANTS
from protocols.certificates.keys import (
    key_identifier,
    load_public_key,
    normalize_public_key,
    public_key_to_point,
)
from protocols.certificates.names import (
    CertificateConfig,
    DistinguishedName,
    build_distinguished_name,
)
from protocols.core.errors import CertificateCreationFailed, CertificateError
from protocols.core.types import KeyUsagePurpose
from utils.logger import PKILogger

Purpose = Union[KeyUsagePurpose, x509.ObjectIdentifier]

DEFAULT_END_ENTITY_PURPOSES = (KeyUsagePurpose.EMAIL_PROTECTION,)


class CertificateBuilder:
    """
    Fluent builder for X.509 v3 certificates signed with ECDSA-SHA256.
    """

    def __init__(self):
        self._subject: Optional[DistinguishedName] = None
        self._issuer: Optional[x509.Name] = None
        self._public_key: Optional[EllipticCurvePublicKey] = None
        self._serial_number: Optional[int] = None
        self._not_before: Optional[datetime] = None
        self._not_after: Optional[datetime] = None
        self._extensions = []

    def with_subject(self, subject: DistinguishedName) -> "CertificateBuilder":
        self._subject = subject
        return self

    def with_issuer(self, issuer: x509.Name) -> "CertificateBuilder":
        """Imposta l'issuer del certificato (default: self-issued)"""
        self._issuer = issuer
        return self

    def with_public_key(self, public_key: EllipticCurvePublicKey) -> "CertificateBuilder":
        self._public_key = public_key
        return self

    def with_serial_number(self, serial: Optional[int] = None) -> "CertificateBuilder":
        """Imposta il serial number (o genera uno casuale)"""
        self._serial_number = serial if serial else x509.random_serial_number()
        return self

    def with_validity_period(self, not_before: datetime, not_after: datetime) -> "CertificateBuilder":
        if not_before >= not_after:
            raise ValueError(f"notBefore {not_before} must precede notAfter {not_after}")
        self._not_before = not_before
        self._not_after = not_after
        return self

    def with_basic_constraints(
        self, ca: bool, path_length: Optional[int] = None
    ) -> "CertificateBuilder":
        self._extensions.append((x509.BasicConstraints(ca=ca, path_length=path_length), True))
        return self

    def with_key_usage(
        self, digital_signature: bool = False, key_cert_sign: bool = False, crl_sign: bool = False
    ) -> "CertificateBuilder":
        self._extensions.append(
            (
                x509.KeyUsage(
                    digital_signature=digital_signature,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=key_cert_sign,
                    crl_sign=crl_sign,
                    encipher_only=False,
                    decipher_only=False,
                ),
                True,
            )
        )
        return self

    def with_extended_key_usage(self, purposes: Sequence[Purpose]) -> "CertificateBuilder":
        oids = [p.oid if isinstance(p, KeyUsagePurpose) else p for p in purposes]
        if not oids:
            raise ValueError("ExtendedKeyUsage needs at least one purpose")
        self._extensions.append((x509.ExtendedKeyUsage(oids), False))
        return self

    def with_subject_key_identifier(self, point: bytes) -> "CertificateBuilder":
        self._extensions.append((x509.SubjectKeyIdentifier(key_identifier(point)), False))
        return self

    def with_authority_key_identifier(self, issuer_point: bytes) -> "CertificateBuilder":
        self._extensions.append(
            (
                x509.AuthorityKeyIdentifier(
                    key_identifier=key_identifier(issuer_point),
                    authority_cert_issuer=None,
                    authority_cert_serial_number=None,
                ),
                False,
            )
        )
        return self

    def build_and_sign(self, private_key: EllipticCurvePrivateKey) -> x509.Certificate:
        """
        Costruisce e firma il certificato.

        Args:
            private_key: Chiave privata dell'issuer

        Returns:
            Certificato X.509 firmato
        """
        if self._subject is None or self._public_key is None:
            raise ValueError("Subject and public key are required")
        if self._not_before is None or self._not_after is None:
            raise ValueError("Validity period is required")

        subject = self._subject.to_x509_name()

        cert_builder = x509.CertificateBuilder()
        cert_builder = cert_builder.subject_name(subject)
        cert_builder = cert_builder.issuer_name(self._issuer or subject)
        cert_builder = cert_builder.public_key(self._public_key)
        cert_builder = cert_builder.serial_number(
            self._serial_number or x509.random_serial_number()
        )
        cert_builder = cert_builder.not_valid_before(self._not_before)
        cert_builder = cert_builder.not_valid_after(self._not_after)

        for extension, critical in self._extensions:
            cert_builder = cert_builder.add_extension(extension, critical=critical)

        return cert_builder.sign(private_key, hashes.SHA256())


class CertificateChain(NamedTuple):
    """Leaf-first certificate chain."""

    end_entity: x509.Certificate
    intermediate: x509.Certificate
    root: x509.Certificate

    @property
    def certificates(self) -> List[x509.Certificate]:
        return [self.end_entity, self.intermediate, self.root]

    def to_pem(self) -> str:
        """End-entity, intermediate, root; newline separated."""
        blocks = [
            cert.public_bytes(serialization.Encoding.PEM).decode("ascii").strip()
            for cert in self.certificates
        ]
        return "\n".join(blocks) + "\n"


class CertificateChainFactory:
    """
    Factory for the three certificate tiers.

    Each create_* method returns the signed certificate; the chain is wired by
    build_certificate_chain(), which owns the generated CA keys.
    """

    @staticmethod
    def create_root_ca(
        private_key: EllipticCurvePrivateKey,
        config: CertificateConfig,
        not_before: datetime,
        now: datetime,
    ) -> x509.Certificate:
        point = public_key_to_point(private_key.public_key())
        return (
            CertificateBuilder()
            .with_subject(build_distinguished_name(config))
            .with_public_key(private_key.public_key())
            .with_serial_number()
            .with_validity_period(not_before, now + timedelta(days=config.validity_days))
            .with_basic_constraints(ca=True, path_length=PKI_CONSTANTS.ROOT_MAX_PATH_LENGTH)
            .with_key_usage(key_cert_sign=True, crl_sign=True)
            .with_subject_key_identifier(point)
            .build_and_sign(private_key)
        )

    @staticmethod
    def create_intermediate_ca(
        private_key: EllipticCurvePrivateKey,
        config: CertificateConfig,
        issuer_certificate: x509.Certificate,
        issuer_private_key: EllipticCurvePrivateKey,
        not_before: datetime,
        now: datetime,
    ) -> x509.Certificate:
        return (
            CertificateBuilder()
            .with_subject(build_distinguished_name(config))
            .with_issuer(issuer_certificate.subject)
            .with_public_key(private_key.public_key())
            .with_serial_number()
            .with_validity_period(not_before, now + timedelta(days=config.validity_days))
            .with_basic_constraints(ca=True, path_length=PKI_CONSTANTS.INTERMEDIATE_MAX_PATH_LENGTH)
            .with_key_usage(key_cert_sign=True, crl_sign=True)
            .with_subject_key_identifier(public_key_to_point(private_key.public_key()))
            .with_authority_key_identifier(public_key_to_point(issuer_private_key.public_key()))
            .build_and_sign(issuer_private_key)
        )

    @staticmethod
    def create_end_entity_certificate(
        public_key: EllipticCurvePublicKey,
        config: CertificateConfig,
        issuer_certificate: x509.Certificate,
        issuer_private_key: EllipticCurvePrivateKey,
        not_before: datetime,
        now: datetime,
        purposes: Sequence[Purpose] = DEFAULT_END_ENTITY_PURPOSES,
    ) -> x509.Certificate:
        return (
            CertificateBuilder()
            .with_subject(build_distinguished_name(config))
            .with_issuer(issuer_certificate.subject)
            .with_public_key(public_key)
            .with_serial_number()
            .with_validity_period(not_before, now + timedelta(days=config.validity_days))
            .with_basic_constraints(ca=False, path_length=None)
            .with_key_usage(digital_signature=True)
            .with_extended_key_usage(purposes)
            .with_subject_key_identifier(public_key_to_point(public_key))
            .with_authority_key_identifier(public_key_to_point(issuer_private_key.public_key()))
            .build_and_sign(issuer_private_key)
        )


def _check_not_after(now: datetime, validity_days: int) -> datetime:
    """notAfter oltre l'anno 9999 non è rappresentabile"""
    try:
        return now + timedelta(days=validity_days)
    except OverflowError as e:
        raise ValueError(f"validity of {validity_days} days is out of range") from e


def build_certificate_chain(
    public_key: Any,
    config: CertificateConfig,
    extended_key_usage: Sequence[Purpose] = DEFAULT_END_ENTITY_PURPOSES,
    now: Optional[datetime] = None,
) -> CertificateChain:
    """
    Build Root CA -> Intermediate CA -> End-Entity for the given public key.

    Args:
        public_key: 65-byte uncompressed P-256 point, EC public key, or key handle
        config: Subject of the end-entity certificate; the CA tiers reuse its
            organization fields with "<organization> Root CA" and
            "<organization> Intermediate CA" common names
        extended_key_usage: End-entity ExtendedKeyUsage purposes
        now: Reference time (default: current UTC time)

    Returns:
        CertificateChain

    Raises:
        UnsupportedKeyFormat: public_key is not an uncompressed P-256 point
        InvalidKeyData: public_key cannot be read or parsed
        CertificateCreationFailed: Any certificate/extension assembly failure
    """
    logger = PKILogger.get_logger("ChainFactory")

    # Key validation happens before anything is generated or signed
    point = normalize_public_key(public_key)
    subject_public_key = load_public_key(point)

    now = now or datetime.now(timezone.utc)
    not_before = now - timedelta(minutes=PKI_CONSTANTS.CLOCK_SKEW_MINUTES)

    root_config = config.derive(
        f"{config.organization} Root CA",
        config.validity_days * PKI_CONSTANTS.ROOT_VALIDITY_MULTIPLIER,
    )
    intermediate_config = config.derive(
        f"{config.organization} Intermediate CA",
        config.validity_days * PKI_CONSTANTS.INTERMEDIATE_VALIDITY_MULTIPLIER,
    )
    end_entity_config = replace(
        config,
        validity_days=config.validity_days * PKI_CONSTANTS.END_ENTITY_VALIDITY_MULTIPLIER,
    )

    logger.info(f"Building certificate chain for '{config.common_name}' ({config.validity_days} days)")

    try:
        for tier_config in (root_config, intermediate_config, end_entity_config):
            _check_not_after(now, tier_config.validity_days)

        root_key = ec.generate_private_key(ec.SECP256R1())
        intermediate_key = ec.generate_private_key(ec.SECP256R1())

        root_cert = CertificateChainFactory.create_root_ca(
            root_key, root_config, not_before, now
        )
        logger.debug(f"Root CA created: serial={root_cert.serial_number:x}")

        intermediate_cert = CertificateChainFactory.create_intermediate_ca(
            intermediate_key, intermediate_config, root_cert, root_key, not_before, now
        )
        logger.debug(f"Intermediate CA created: serial={intermediate_cert.serial_number:x}")

        end_entity_cert = CertificateChainFactory.create_end_entity_certificate(
            subject_public_key,
            end_entity_config,
            intermediate_cert,
            intermediate_key,
            not_before,
            now,
            purposes=extended_key_usage,
        )
        logger.debug(f"End-entity certificate created: serial={end_entity_cert.serial_number:x}")
    except CertificateError:
        raise
    except (ValueError, TypeError, OverflowError) as e:
        logger.error(f"Certificate chain creation failed: {e}")
        raise CertificateCreationFailed(str(e)) from e

    logger.info("✅ Certificate chain created (end-entity, intermediate, root)")
    return CertificateChain(end_entity_cert, intermediate_cert, root_cert)


def create_self_signed_certificate_chain(
    public_key: Any,
    config: CertificateConfig,
    extended_key_usage: Sequence[Purpose] = DEFAULT_END_ENTITY_PURPOSES,
) -> str:
    """
    Build the three-tier chain and return it as leaf-first PEM.

    See build_certificate_chain() for arguments and errors.
    """
    chain = build_certificate_chain(public_key, config, extended_key_usage=extended_key_usage)
    try:
        return chain.to_pem()
    except ValueError as e:
        raise CertificateCreationFailed(str(e)) from e
